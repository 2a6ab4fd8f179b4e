"""Report Store: filing, lookup and listing of reports."""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from quorum.content.stores import ContentRegistry
from quorum.db.tables import AgentRow, ReportRow
from quorum.moderation.consensus import ConsensusEvaluator
from quorum.moderation.errors import DuplicateError, NotFoundError, ValidationError
from quorum.moderation.models import Report, ReportStatus, TargetType, VoteChoice
from quorum.moderation.vote_ledger import VoteLedger, report_from_row
from quorum.security.audit_log import AuditLogger, record_event

logger = structlog.get_logger(__name__)


def parse_target_type(target_type: str | TargetType) -> TargetType:
    try:
        return TargetType(target_type)
    except ValueError:
        raise ValidationError("target_type must be: post, skill, knowledge, or agent") from None


def parse_status(status: str | ReportStatus) -> ReportStatus:
    try:
        return ReportStatus(status)
    except ValueError:
        raise ValidationError("status must be: pending, confirmed, or dismissed") from None


class ReportStore:
    """Reports against posts, skills, knowledge entries and agents."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        ledger: VoteLedger,
        consensus: ConsensusEvaluator,
        contents: ContentRegistry,
        reason_min_length: int = 10,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        self._sessions = session_factory
        self._ledger = ledger
        self._consensus = consensus
        self._contents = contents
        self._reason_min_length = reason_min_length
        self._audit = audit

    def _validate(self, target_type, target_id, reason) -> tuple[TargetType, str, str]:
        target_type = parse_target_type(target_type)
        target_id = (target_id or "").strip() if isinstance(target_id, str) else ""
        if not target_id:
            raise ValidationError("target_id is required")
        reason = reason.strip() if isinstance(reason, str) else ""
        if len(reason) < self._reason_min_length:
            raise ValidationError(
                f"Please provide a detailed reason ({self._reason_min_length}+ chars)"
            )
        return target_type, target_id, reason

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def file_report(
        self, reporter_id: str, target_type: str | TargetType, target_id: str, reason: str
    ) -> Report:
        """Create a pending report with the reporter's own confirm vote.

        The report row and the seed vote commit together.  The seed vote goes
        through the same tally path as every later vote, so a threshold of 1
        confirms the report at filing.

        Parameters
        ----------
        reporter_id:
            The agent filing the report.
        target_type:
            ``post``, ``skill``, ``knowledge`` or ``agent``.
        target_id:
            Id of the reported entity in its owning store.
        reason:
            Free-text justification, at least ``reason_min_length`` chars.

        Returns
        -------
        Report
            The new report with ``votes_confirm == 1``.

        Raises
        ------
        ValidationError
            If the type is unknown, the id is empty or the reason too short.
        DuplicateError
            If the reporter already has an open report on this target.
        """
        target_type, target_id, reason = self._validate(target_type, target_id, reason)

        with self._sessions.begin() as session:
            row = ReportRow(
                reporter_id=reporter_id,
                target_type=target_type.value,
                target_id=target_id,
                reason=reason,
                status=ReportStatus.pending.value,
                votes_confirm=0,
                votes_dismiss=0,
            )
            session.add(row)
            try:
                session.flush()
            except IntegrityError:
                raise DuplicateError("You already reported this content") from None

            result = self._ledger.record(session, row.id, reporter_id, VoteChoice.confirm)
            session.refresh(row)
            report = report_from_row(row)

        logger.info(
            "report_filed",
            report_id=report.id,
            reporter_id=reporter_id,
            target_type=target_type.value,
            target_id=target_id,
        )
        record_event(
            self._audit,
            actor=reporter_id,
            action="report.filed",
            resource_type="report",
            resource_id=report.id,
            details={"target_type": target_type.value, "target_id": target_id},
        )
        self._consensus.settle(report, result, reporter_id)
        return report

    def get_report(self, report_id: str) -> Report:
        with self._sessions() as session:
            row = session.get(ReportRow, report_id)
            if row is None:
                raise NotFoundError(f"Report '{report_id}' not found")
            return report_from_row(row)

    def list_reports(
        self, status: Optional[str | ReportStatus] = ReportStatus.pending, limit: int = 20
    ) -> list[Report]:
        """Reports closest to quorum first, newest first among equals.

        ``status=None`` lists every status.
        """
        stmt = select(ReportRow, AgentRow.name).outerjoin(AgentRow, AgentRow.id == ReportRow.reporter_id)
        if status is not None:
            stmt = stmt.where(ReportRow.status == parse_status(status).value)
        stmt = stmt.order_by(ReportRow.votes_confirm.desc(), ReportRow.created_at.desc()).limit(limit)

        with self._sessions() as session:
            rows = session.execute(stmt).all()

        return [
            report_from_row(
                row,
                reporter_name=reporter_name,
                target_preview=self._preview(TargetType(row.target_type), row.target_id),
            )
            for row, reporter_name in rows
        ]

    def _preview(self, target_type: TargetType, target_id: str) -> Optional[str]:
        try:
            return self._contents[target_type].label(target_id)
        except Exception:
            logger.warning("target_preview_failed", target_type=target_type.value, target_id=target_id, exc_info=True)
            return None
