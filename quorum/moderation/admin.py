"""Administrative Override Path.

Privileged operations that bypass voting.  The capability check happens here,
once, before anything reaches the Resolution Executor.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from quorum.auth.models import Participant
from quorum.auth.permissions import require_moderator
from quorum.content.stores import ContentRegistry
from quorum.db.tables import ReportRow, utcnow
from quorum.moderation.ban_store import BanStore
from quorum.moderation.errors import AlreadyResolvedError, NotFoundError, ValidationError
from quorum.moderation.executor import ResolutionExecutor
from quorum.moderation.models import (
    AdminDeleteResult,
    BannedAgent,
    Report,
    ReportStatus,
    TargetType,
    Verdict,
)
from quorum.moderation.report_store import parse_target_type
from quorum.moderation.vote_ledger import report_from_row
from quorum.security.audit_log import AuditLogger, record_event

logger = structlog.get_logger(__name__)


class AdminOverride:
    """admin_delete, admin_ban, admin_unban and admin_verdict."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        contents: ContentRegistry,
        bans: BanStore,
        executor: ResolutionExecutor,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        self._sessions = session_factory
        self._contents = contents
        self._bans = bans
        self._executor = executor
        self._audit = audit

    def _record(self, actor: Participant, action: str, resource_type: str, resource_id: str, **details) -> None:
        record_event(
            self._audit,
            actor=actor.id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
        )

    def _ever_reported(self, target_type: TargetType, target_id: str) -> bool:
        stmt = (
            select(ReportRow.id)
            .where(ReportRow.target_type == target_type.value, ReportRow.target_id == target_id)
            .limit(1)
        )
        with self._sessions() as session:
            return session.execute(stmt).first() is not None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def admin_delete(
        self, actor: Participant, target_type: str | TargetType, target_id: str, reason: Optional[str] = None
    ) -> AdminDeleteResult:
        """Remove a target and close every pending report against it.

        A target that is already gone counts as deleted when the engine removed
        it earlier or has reports on record for it; the retry only closes
        leftover reports and announces nothing.  A target the engine has never
        heard of is ``NotFoundError``.
        """
        require_moderator(actor)
        target_type = parse_target_type(target_type)
        store = self._contents[target_type]

        if not store.exists(target_id):
            known = self._executor.was_removed(target_type, target_id) or self._ever_reported(
                target_type, target_id
            )
            if not known:
                raise NotFoundError("Content not found")
            logger.info("admin_delete_already_gone", target_type=target_type.value, target_id=target_id)
            outcome = self._executor.resolve(
                target_type, target_id, actor_id=actor.id, reason=reason, origin="admin", announce=False
            )
            return AdminDeleteResult(target_type, target_id, already_deleted=True, outcome=outcome)

        label = store.label(target_id)
        outcome = self._executor.resolve(target_type, target_id, actor_id=actor.id, reason=reason, origin="admin")
        logger.info(
            "admin_delete",
            actor_id=actor.id,
            target_type=target_type.value,
            target_id=target_id,
            failed_steps=outcome.failed_steps,
        )
        return AdminDeleteResult(target_type, target_id, label=label, outcome=outcome)

    def admin_ban(self, actor: Participant, agent_id: str, reason: Optional[str] = None) -> BannedAgent:
        """Ban (or re-ban) an agent and announce it."""
        require_moderator(actor)
        agents = self._contents[TargetType.agent]
        name = agents.label(agent_id)
        if name is None:
            raise NotFoundError("Agent not found")

        ban = self._bans.upsert(agent_id, reason=reason, banned_by=actor.id)
        logger.info("agent_banned", actor_id=actor.id, agent_id=agent_id)
        self._record(actor, "agent.banned", "agent", agent_id, reason=reason)
        self._executor.announce(
            actor.id, self._executor.announcement_text("ban", TargetType.agent, name, reason)
        )
        return ban

    def admin_unban(self, actor: Participant, agent_id: str) -> None:
        require_moderator(actor)
        if not self._bans.remove(agent_id):
            raise NotFoundError("Agent is not banned")
        logger.info("agent_unbanned", actor_id=actor.id, agent_id=agent_id)
        self._record(actor, "agent.unbanned", "agent", agent_id)

    def admin_verdict(
        self, actor: Participant, report_id: str, outcome: str | Verdict, reason: Optional[str] = None
    ) -> Report:
        """Close a pending report directly, without counting votes.

        A confirmed verdict runs the full Resolution Executor with the admin as
        the acting participant; a dismissed one has no side effects.
        """
        require_moderator(actor)
        try:
            verdict = Verdict(outcome)
        except ValueError:
            raise ValidationError("outcome must be: confirmed or dismissed") from None

        now = utcnow()
        stmt = (
            update(ReportRow)
            .where(ReportRow.id == report_id, ReportRow.status == ReportStatus.pending.value)
            .values(status=verdict.value, resolved_at=now, resolved_by=actor.id)
            .execution_options(synchronize_session=False)
        )
        with self._sessions.begin() as session:
            matched = session.execute(stmt).rowcount
            row = session.get(ReportRow, report_id)
            if row is None:
                raise NotFoundError(f"Report '{report_id}' not found")
            if not matched:
                raise AlreadyResolvedError(f"Report '{report_id}' is already {row.status}")
            report = report_from_row(row)

        logger.info("report_verdict", report_id=report_id, actor_id=actor.id, verdict=verdict.value)
        self._record(actor, "report.verdict", "report", report_id, verdict=verdict.value, reason=reason)

        if verdict is Verdict.confirmed:
            self._executor.resolve(
                report.target_type,
                report.target_id,
                actor_id=actor.id,
                reason=reason or report.reason,
                report_id=report.id,
                origin="verdict",
                resolved_at=report.resolved_at,
            )
        return report
