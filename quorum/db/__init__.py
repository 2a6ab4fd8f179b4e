"""Relational storage shared by the moderation engine and its collaborators."""

from quorum.db.base import Base
from quorum.db.session import create_db_engine, init_db, make_session_factory

__all__ = ["Base", "create_db_engine", "init_db", "make_session_factory"]
