"""Consensus Evaluator.

A report moves ``pending -> confirmed`` when ``votes_confirm`` reaches the
quorum threshold.  Dismiss votes only counter-weigh; nothing auto-dismisses.

The counter increment, the threshold comparison and the status flip are one
conditional ``UPDATE ... WHERE status = 'pending' RETURNING ...``.  The row is
locked (or, on SQLite, the database is write-locked) from that statement until
commit, so for any report exactly one statement ever observes the flip.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog
from sqlalchemy import DateTime, case, literal, update
from sqlalchemy.orm import Session

from quorum.db.tables import ReportRow, utcnow
from quorum.moderation.models import Report, ReportStatus, TargetType, VoteChoice, VoteResult
from quorum.security.audit_log import AuditLogger, record_event

if TYPE_CHECKING:
    from quorum.moderation.executor import ResolutionExecutor

logger = structlog.get_logger(__name__)

# The only two counters a vote may touch.
_COUNTERS = {
    VoteChoice.confirm: ReportRow.votes_confirm,
    VoteChoice.dismiss: ReportRow.votes_dismiss,
}


class ConsensusEvaluator:
    """Applies votes to report tallies and fires resolution on quorum."""

    def __init__(
        self,
        threshold: int,
        executor: "ResolutionExecutor",
        audit: Optional[AuditLogger] = None,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self._executor = executor
        self._audit = audit

    def needed_for_confirm(self, votes_confirm: int) -> int:
        return max(self.threshold - votes_confirm, 0)

    def apply_vote(
        self,
        session: Session,
        report_id: str,
        voter_id: str,
        choice: VoteChoice,
    ) -> Optional[VoteResult]:
        """Increment one counter and check quorum in a single statement.

        Returns ``None`` when the report is missing or no longer pending.
        ``VoteResult.resolved`` is true only for the vote that flipped the
        status.
        """
        counter = _COUNTERS[choice]
        values = {counter: counter + 1}
        if choice is VoteChoice.confirm:
            reached = ReportRow.votes_confirm + 1 >= self.threshold
            values[ReportRow.status] = case(
                (reached, ReportStatus.confirmed.value), else_=ReportRow.status
            )
            values[ReportRow.resolved_at] = case(
                (reached, literal(utcnow(), DateTime(timezone=True))), else_=ReportRow.resolved_at
            )
            values[ReportRow.resolved_by] = case((reached, voter_id), else_=ReportRow.resolved_by)

        stmt = (
            update(ReportRow)
            .where(ReportRow.id == report_id, ReportRow.status == ReportStatus.pending.value)
            .values(values)
            .returning(ReportRow.votes_confirm, ReportRow.votes_dismiss, ReportRow.status)
            .execution_options(synchronize_session=False)
        )
        row = session.execute(stmt).first()
        if row is None:
            return None

        votes_confirm, votes_dismiss, status = row
        status = ReportStatus(status)
        return VoteResult(
            report_id=report_id,
            votes_confirm=votes_confirm,
            votes_dismiss=votes_dismiss,
            status=status,
            # The WHERE clause only matched a pending row, so a confirmed
            # status here means this statement made the transition.
            resolved=status is ReportStatus.confirmed,
            needed_for_confirm=self.needed_for_confirm(votes_confirm),
        )

    def settle(self, report: Report, result: VoteResult, voter_id: str) -> None:
        """Run after the vote's transaction has committed.

        Fires the Resolution Executor for the tipping vote only.
        """
        if not result.resolved:
            return
        logger.info(
            "report_confirmed",
            report_id=report.id,
            target_type=report.target_type.value,
            target_id=report.target_id,
            votes_confirm=result.votes_confirm,
            resolved_by=voter_id,
        )
        record_event(
            self._audit,
            actor=voter_id,
            action="report.confirmed",
            resource_type="report",
            resource_id=report.id,
            details={
                "target_type": report.target_type.value,
                "target_id": report.target_id,
                "votes_confirm": result.votes_confirm,
                "votes_dismiss": result.votes_dismiss,
            },
        )
        self._executor.resolve(
            TargetType(report.target_type),
            report.target_id,
            actor_id=voter_id,
            reason=report.reason,
            report_id=report.id,
            origin="consensus",
            resolved_at=report.resolved_at,
        )
