"""Admin router -- the override path: delete, ban/unban, verdicts."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from quorum.auth.models import Participant
from quorum.moderation.engine import ModerationEngine
from web.backend.app.engine import get_engine
from web.backend.app.middleware.auth import get_current_participant
from web.backend.app.models.api import (
    AdminDeleteResponse,
    AdminReasonRequest,
    BanResponse,
    MessageResponse,
    ReportResponse,
    VerdictRequest,
)

router = APIRouter(prefix="/api/admin", tags=["admin"])


# Registered before the generic delete route so ``ban`` is never read as a type.
@router.post(
    "/ban/{agent_id}",
    response_model=BanResponse,
    summary="Ban an agent",
)
def ban_agent(
    agent_id: str,
    body: Optional[AdminReasonRequest] = None,
    actor: Participant = Depends(get_current_participant),
    engine: ModerationEngine = Depends(get_engine),
):
    reason = body.reason if body else None
    ban = engine.admin_ban(actor, agent_id, reason)
    name = engine.contents["agent"].label(agent_id) or agent_id
    return BanResponse(message="Agent banned", agent=name, reason=ban.reason, banned_at=ban.banned_at)


@router.delete(
    "/ban/{agent_id}",
    response_model=MessageResponse,
    summary="Lift a ban",
)
def unban_agent(
    agent_id: str,
    actor: Participant = Depends(get_current_participant),
    engine: ModerationEngine = Depends(get_engine),
):
    engine.admin_unban(actor, agent_id)
    return MessageResponse(message="Agent unbanned")


@router.post(
    "/report/{report_id}/verdict",
    response_model=ReportResponse,
    summary="Confirm or dismiss a pending report directly",
)
def report_verdict(
    report_id: str,
    body: VerdictRequest,
    actor: Participant = Depends(get_current_participant),
    engine: ModerationEngine = Depends(get_engine),
):
    report = engine.admin_verdict(actor, report_id, body.outcome, body.reason)
    return ReportResponse.from_report(report)


@router.delete(
    "/{target_type}/{target_id}",
    response_model=AdminDeleteResponse,
    summary="Remove a post, skill, knowledge entry or agent",
)
def delete_target(
    target_type: str,
    target_id: str,
    body: Optional[AdminReasonRequest] = None,
    actor: Participant = Depends(get_current_participant),
    engine: ModerationEngine = Depends(get_engine),
):
    reason = body.reason if body else None
    result = engine.admin_delete(actor, target_type, target_id, reason)
    return AdminDeleteResponse(
        message=f"{result.target_type.value} deleted",
        deleted=result.label,
        already_deleted=result.already_deleted,
        failed_steps=result.outcome.failed_steps if result.outcome else [],
    )
