"""Error taxonomy for the moderation engine.

Each error carries the HTTP status the web layer answers with.  Executor step
failures are never raised to callers; they are recorded on the
``ResolutionOutcome``.
"""

from __future__ import annotations


class ModerationError(Exception):
    """Base class for definite, non-retryable moderation failures."""

    status_code: int = 400

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ValidationError(ModerationError):
    """Malformed input, rejected before storage is touched."""

    status_code = 400


class NotFoundError(ModerationError):
    status_code = 404


class TargetNotFoundError(NotFoundError):
    """The reported entity is gone from its owning store."""


class DuplicateError(ModerationError):
    """The reporter already has an open report against this target."""

    status_code = 409


class DuplicateVoteError(DuplicateError):
    """The voter already voted on this report."""


class AlreadyResolvedError(ModerationError):
    """The report is terminal; no further votes or verdicts apply."""

    status_code = 409


class PermissionDeniedError(ModerationError, PermissionError):
    """Banned participant, or a non-admin on the override path."""

    status_code = 403


class ExecutorStepError(ModerationError):
    """A resolution side effect failed.  ``step`` names which one."""

    status_code = 500

    def __init__(self, step: str, message: str = "") -> None:
        super().__init__(message or f"step '{step}' failed")
        self.step = step
