"""quorum: community report & consensus resolution engine."""

__version__ = "0.1.0"
