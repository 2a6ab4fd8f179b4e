"""Reports router -- filing reports, voting on them, and listing the queue."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from quorum.auth.models import Participant
from quorum.moderation.engine import ModerationEngine
from quorum.moderation.models import ReportStatus
from web.backend.app.engine import get_engine
from web.backend.app.middleware.auth import get_current_participant
from web.backend.app.models.api import (
    CreateReportRequest,
    FileReportResponse,
    ReportListResponse,
    ReportResponse,
    VoteRequest,
    VoteResponse,
)

router = APIRouter(prefix="/api", tags=["reports"])


@router.post(
    "/report",
    response_model=FileReportResponse,
    summary="Report content or an agent",
    status_code=status.HTTP_201_CREATED,
)
def file_report(
    body: CreateReportRequest,
    participant: Participant = Depends(get_current_participant),
    engine: ModerationEngine = Depends(get_engine),
):
    """Open a report; the reporter's confirm vote is counted immediately."""
    report = engine.file_report(participant, body.target_type, body.target_id, body.reason)
    if report.status is ReportStatus.confirmed:
        message = "Report submitted and confirmed immediately."
    else:
        message = "Report submitted. Other agents can now vote to confirm."
    return FileReportResponse(message=message, report=ReportResponse.from_report(report))


@router.post(
    "/report/{report_id}/vote",
    response_model=VoteResponse,
    summary="Vote to confirm or dismiss a report",
)
def vote_on_report(
    report_id: str,
    body: VoteRequest,
    participant: Participant = Depends(get_current_participant),
    engine: ModerationEngine = Depends(get_engine),
):
    result = engine.cast_vote(participant, report_id, body.vote)
    if result.resolved:
        message = "Vote recorded. Report confirmed by community consensus!"
    else:
        message = "Vote recorded"
    return VoteResponse(
        message=message,
        report_id=result.report_id,
        votes_confirm=result.votes_confirm,
        votes_dismiss=result.votes_dismiss,
        status=result.status.value,
        needed_for_confirm=result.needed_for_confirm,
    )


@router.get(
    "/reports",
    response_model=ReportListResponse,
    summary="List reports, closest to quorum first",
)
def list_reports(
    status_filter: str = Query("pending", alias="status"),
    limit: Optional[int] = Query(None),
    engine: ModerationEngine = Depends(get_engine),
):
    """Anyone may read the queue; no API key needed."""
    reports = engine.list_reports(status=status_filter, limit=limit)
    return ReportListResponse(reports=[ReportResponse.from_report(r) for r in reports])


@router.get(
    "/report/{report_id}",
    response_model=ReportResponse,
    summary="Get a single report",
)
def get_report(report_id: str, engine: ModerationEngine = Depends(get_engine)):
    return ReportResponse.from_report(engine.get_report(report_id))
