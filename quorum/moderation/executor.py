"""Resolution Executor: the side effects of a confirmed report.

Steps run in order, each in its own transaction, and each failure is
recorded on the outcome, logged and audited without stopping the steps after
it.  Nothing is rolled back: a removed target stays removed even if the
announcement fails.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

import structlog
from sqlalchemy import update
from sqlalchemy.orm import Session, sessionmaker

from quorum.content.stores import AnnouncementSink, ContentRegistry
from quorum.db.tables import RemovedTargetRow, ReportRow, utcnow
from quorum.moderation.ban_store import BanStore
from quorum.moderation.errors import ExecutorStepError, TargetNotFoundError
from quorum.moderation.models import ReportStatus, ResolutionOutcome, StepResult, TargetType
from quorum.security.audit_log import AuditLogger, record_event

logger = structlog.get_logger(__name__)

STEP_DELETE = "delete_target"
STEP_CLOSE = "close_related_reports"
STEP_BAN = "ban_agent"
STEP_ANNOUNCE = "announce"


def excerpt(text: Optional[str], limit: int) -> str:
    text = (text or "").strip()
    return text if len(text) <= limit else text[:limit] + "..."


class ResolutionExecutor:
    """Deletes the target, closes sibling reports, bans agents, announces."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        contents: ContentRegistry,
        bans: BanStore,
        announcements: AnnouncementSink,
        audit: Optional[AuditLogger] = None,
        reason_chars: int = 100,
    ) -> None:
        self._sessions = session_factory
        self._contents = contents
        self._bans = bans
        self._announcements = announcements
        self._audit = audit
        self._reason_chars = reason_chars

    # -- public API ----------------------------------------------------------

    def resolve(
        self,
        target_type: TargetType,
        target_id: str,
        actor_id: str,
        reason: Optional[str] = None,
        report_id: Optional[str] = None,
        origin: str = "admin",
        resolved_at: Optional[datetime] = None,
        announce: bool = True,
    ) -> ResolutionOutcome:
        """Apply a confirmed moderation action to ``(target_type, target_id)``.

        *origin* is ``consensus``, ``verdict`` or ``admin`` and only shapes
        the announcement text.  *report_id*, when given, is the report whose
        resolution triggered this and is left out of the sibling closure.
        With *announce* false the announcement step is skipped, which is how an
        idempotent retry avoids posting the same notice twice.
        """
        target_type = TargetType(target_type)
        outcome = ResolutionOutcome(
            target_type=target_type, target_id=target_id, actor_id=actor_id, report_id=report_id
        )
        log = logger.bind(target_type=target_type.value, target_id=target_id, actor_id=actor_id, origin=origin)

        # Captured before deletion so the announcement can still name it.
        label = self._label(target_type, target_id)

        self._run(outcome, STEP_DELETE, lambda: self._delete_target(target_type, target_id, actor_id))
        self._run(
            outcome,
            STEP_CLOSE,
            lambda: self._close_related(target_type, target_id, actor_id, report_id, resolved_at or utcnow()),
        )
        if target_type is TargetType.agent:
            self._run(outcome, STEP_BAN, lambda: self._ban(target_id, reason, actor_id))
        if announce:
            text = self.announcement_text(origin, target_type, label, reason)
            self._run(outcome, STEP_ANNOUNCE, lambda: self._publish(actor_id, text))

        log.info("resolution_executed", report_id=report_id, failed_steps=outcome.failed_steps)
        self._audit_outcome(outcome, origin)
        return outcome

    def announce(self, actor_id: str, text: str) -> StepResult:
        """Best-effort announcement on its own (used by the ban path)."""
        outcome = ResolutionOutcome(target_type=TargetType.agent, target_id="", actor_id=actor_id)
        self._run(outcome, STEP_ANNOUNCE, lambda: self._publish(actor_id, text))
        return outcome.steps[0]

    def was_removed(self, target_type: TargetType, target_id: str) -> bool:
        """True if this engine deleted ``(target_type, target_id)`` before."""
        with self._sessions() as session:
            return session.get(RemovedTargetRow, (TargetType(target_type).value, target_id)) is not None

    def announcement_text(
        self, origin: str, target_type: TargetType, label: Optional[str], reason: Optional[str]
    ) -> str:
        what = f'{target_type.value} "{label}"' if label else target_type.value
        if origin == "consensus":
            return f"Community consensus removed {what}. Reason: {excerpt(reason, self._reason_chars)}"
        if origin == "ban":
            return (
                f'Agent "{label or target_type.value}" has been banned. '
                f"Reason: {excerpt(reason, self._reason_chars) or 'Violation of community standards'}"
            )
        return (
            f"Moderation action: removed {what}. "
            f"Reason: {excerpt(reason, self._reason_chars) or 'Community flagged'}"
        )

    # -- steps ---------------------------------------------------------------

    def _run(self, outcome: ResolutionOutcome, step: str, action: Callable[[], str]) -> None:
        try:
            detail = action()
        except Exception as exc:  # each step fails on its own
            error = ExecutorStepError(step, f"{type(exc).__name__}: {exc}")
            outcome.steps.append(StepResult(step=step, ok=False, detail=error.message))
            logger.error(
                "executor_step_failed",
                step=step,
                target_type=outcome.target_type.value,
                target_id=outcome.target_id,
                report_id=outcome.report_id,
                exc_info=exc,
            )
            self._audit_failure(outcome, error)
        else:
            outcome.steps.append(StepResult(step=step, ok=True, detail=detail or ""))

    def _audit_failure(self, outcome: ResolutionOutcome, error: ExecutorStepError) -> None:
        record_event(
            self._audit,
            actor=outcome.actor_id,
            action=f"executor.{error.step}",
            resource_type=outcome.target_type.value,
            resource_id=outcome.target_id,
            details={"report_id": outcome.report_id, "error": error.message},
            success=False,
        )

    def _audit_outcome(self, outcome: ResolutionOutcome, origin: str) -> None:
        record_event(
            self._audit,
            actor=outcome.actor_id,
            action="resolution.executed",
            resource_type=outcome.target_type.value,
            resource_id=outcome.target_id,
            details={
                "origin": origin,
                "report_id": outcome.report_id,
                "steps": {s.step: s.detail for s in outcome.steps},
            },
            success=outcome.ok,
        )

    def _label(self, target_type: TargetType, target_id: str) -> Optional[str]:
        try:
            return self._contents[target_type].label(target_id)
        except Exception:
            logger.warning("target_label_unavailable", target_type=target_type.value, target_id=target_id, exc_info=True)
            return None

    def _delete_target(self, target_type: TargetType, target_id: str, actor_id: str) -> str:
        try:
            removed = self._contents[target_type].delete(target_id)
        except TargetNotFoundError:
            removed = False
        if not removed:
            return "already gone"
        with self._sessions.begin() as session:
            session.merge(RemovedTargetRow(target_type=target_type.value, target_id=target_id, removed_by=actor_id))
        return "deleted"

    def _close_related(
        self,
        target_type: TargetType,
        target_id: str,
        actor_id: str,
        report_id: Optional[str],
        resolved_at: datetime,
    ) -> str:
        criteria = [
            ReportRow.target_type == target_type.value,
            ReportRow.target_id == target_id,
            ReportRow.status == ReportStatus.pending.value,
        ]
        if report_id is not None:
            criteria.append(ReportRow.id != report_id)
        stmt = (
            update(ReportRow)
            .where(*criteria)
            .values(status=ReportStatus.confirmed.value, resolved_at=resolved_at, resolved_by=actor_id)
            .execution_options(synchronize_session=False)
        )
        with self._sessions.begin() as session:
            closed = session.execute(stmt).rowcount
        return f"closed {closed} related report(s)"

    def _ban(self, agent_id: str, reason: Optional[str], actor_id: str) -> str:
        self._bans.upsert(agent_id, reason=reason, banned_by=actor_id)
        return "banned"

    def _publish(self, actor_id: str, text: str) -> str:
        self._announcements.publish(actor_id, text, kind="announcement")
        return "published"
