"""Vote Ledger: append-only, one vote per (report, voter)."""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from quorum.db.tables import ReportRow, ReportVoteRow
from quorum.moderation.consensus import ConsensusEvaluator
from quorum.moderation.errors import (
    AlreadyResolvedError,
    DuplicateVoteError,
    NotFoundError,
    ValidationError,
)
from quorum.moderation.models import Report, Vote, VoteChoice, VoteResult

logger = structlog.get_logger(__name__)


def parse_choice(choice: str | VoteChoice) -> VoteChoice:
    try:
        return VoteChoice(choice)
    except ValueError:
        raise ValidationError("vote must be: confirm or dismiss") from None


def report_from_row(row: ReportRow, **extra) -> Report:
    return Report(
        id=row.id,
        reporter_id=row.reporter_id,
        target_type=row.target_type,
        target_id=row.target_id,
        reason=row.reason,
        status=row.status,
        votes_confirm=row.votes_confirm,
        votes_dismiss=row.votes_dismiss,
        created_at=row.created_at,
        resolved_at=row.resolved_at,
        resolved_by=row.resolved_by,
        **extra,
    )


class VoteLedger:
    """Records votes and drives the Consensus Evaluator."""

    def __init__(self, session_factory: sessionmaker[Session], consensus: ConsensusEvaluator) -> None:
        self._sessions = session_factory
        self._consensus = consensus

    def record(
        self, session: Session, report_id: str, voter_id: str, choice: VoteChoice
    ) -> VoteResult:
        """Apply a vote inside the caller's transaction.

        The tally update runs first so a terminal report answers
        ``AlreadyResolvedError`` before any duplicate check.  A duplicate vote
        fails on the primary key and the caller's rollback undoes the tally.
        """
        result = self._consensus.apply_vote(session, report_id, voter_id, choice)
        if result is None:
            row = session.get(ReportRow, report_id)
            if row is None:
                raise NotFoundError(f"Report '{report_id}' not found")
            raise AlreadyResolvedError(f"Report '{report_id}' is already {row.status}")

        session.add(ReportVoteRow(report_id=report_id, agent_id=voter_id, vote=choice.value))
        try:
            session.flush()
        except IntegrityError:
            raise DuplicateVoteError("You already voted on this report") from None
        return result

    def cast_vote(self, report_id: str, voter_id: str, choice: str | VoteChoice) -> VoteResult:
        """Cast one vote; fires resolution if this vote reaches quorum.

        Parameters
        ----------
        report_id:
            The report being voted on.
        voter_id:
            The voting agent.  Each agent votes at most once per report.
        choice:
            ``confirm`` or ``dismiss``.

        Returns
        -------
        VoteResult
            Tallies after the vote; ``resolved`` is true only for the vote
            that moved the report to ``confirmed``.

        Raises
        ------
        ValidationError
            If *choice* is not a known vote.
        NotFoundError
            If the report does not exist.
        AlreadyResolvedError
            If the report is no longer pending.
        DuplicateVoteError
            If *voter_id* already voted on this report.
        """
        choice = parse_choice(choice)
        with self._sessions.begin() as session:
            result = self.record(session, report_id, voter_id, choice)
            report = report_from_row(session.get(ReportRow, report_id))

        logger.info(
            "vote_cast",
            report_id=report_id,
            voter_id=voter_id,
            vote=choice.value,
            votes_confirm=result.votes_confirm,
            votes_dismiss=result.votes_dismiss,
            status=result.status.value,
        )
        self._consensus.settle(report, result, voter_id)
        return result

    def get_votes(self, report_id: str) -> list[Vote]:
        with self._sessions() as session:
            stmt = (
                select(ReportVoteRow)
                .where(ReportVoteRow.report_id == report_id)
                .order_by(ReportVoteRow.created_at)
            )
            return [
                Vote(report_id=r.report_id, voter_id=r.agent_id, vote=VoteChoice(r.vote), created_at=r.created_at)
                for r in session.execute(stmt).scalars()
            ]
