"""Pydantic request/response models for the moderation API.

Request fields default to empty values so the engine, not FastAPI's 422
handling, decides what is malformed and answers 400.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from quorum.moderation.models import Report


# ---------------------------------------------------------------------------
# Reports & votes
# ---------------------------------------------------------------------------


class CreateReportRequest(BaseModel):
    """Body of ``POST /api/report``."""

    target_type: str = ""
    target_id: str = ""
    reason: str = ""

    @field_validator("target_id", mode="before")
    @classmethod
    def _numeric_id(cls, value):
        # Collaborator stores may use integer ids; the engine keys on strings.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ReportResponse(BaseModel):
    """A report as returned by the API."""

    id: str
    reporter_id: Optional[str] = None
    reporter_name: Optional[str] = None
    target_type: str
    target_id: str
    target_preview: Optional[str] = None
    reason: str
    status: str
    votes_confirm: int = 0
    votes_dismiss: int = 0
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None

    @classmethod
    def from_report(cls, report: Report) -> "ReportResponse":
        return cls(
            id=report.id,
            reporter_id=report.reporter_id,
            reporter_name=report.reporter_name,
            target_type=report.target_type.value,
            target_id=report.target_id,
            target_preview=report.target_preview,
            reason=report.reason,
            status=report.status.value,
            votes_confirm=report.votes_confirm,
            votes_dismiss=report.votes_dismiss,
            created_at=report.created_at,
            resolved_at=report.resolved_at,
            resolved_by=report.resolved_by,
        )


class FileReportResponse(BaseModel):
    message: str
    report: ReportResponse


class ReportListResponse(BaseModel):
    reports: list[ReportResponse] = Field(default_factory=list)


class VoteRequest(BaseModel):
    """Body of ``POST /api/report/{id}/vote``."""

    vote: str = ""


class VoteResponse(BaseModel):
    message: str
    report_id: str
    votes_confirm: int
    votes_dismiss: int
    status: str
    needed_for_confirm: int = 0


# ---------------------------------------------------------------------------
# Override path
# ---------------------------------------------------------------------------


class AdminReasonRequest(BaseModel):
    reason: Optional[str] = None


class VerdictRequest(BaseModel):
    outcome: str = ""
    reason: Optional[str] = None


class AdminDeleteResponse(BaseModel):
    message: str
    deleted: Optional[str] = None
    already_deleted: bool = False
    failed_steps: list[str] = Field(default_factory=list)


class BanResponse(BaseModel):
    message: str
    agent: str
    reason: Optional[str] = None
    banned_at: Optional[datetime] = None


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    detail: str
