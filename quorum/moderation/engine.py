"""ModerationEngine: wires the stores together and guards mutating calls."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from quorum.auth.models import Participant
from quorum.auth.permissions import require_participant
from quorum.auth.store import AgentStore
from quorum.config import Settings, get_settings
from quorum.content.stores import AnnouncementSink, ContentRegistry, PostStore
from quorum.db.session import create_db_engine, init_db, make_session_factory
from quorum.moderation.admin import AdminOverride
from quorum.moderation.ban_store import BanStore
from quorum.moderation.consensus import ConsensusEvaluator
from quorum.moderation.executor import ResolutionExecutor
from quorum.moderation.models import (
    AdminDeleteResult,
    BannedAgent,
    Report,
    ReportStatus,
    TargetType,
    Verdict,
    Vote,
    VoteChoice,
    VoteResult,
)
from quorum.moderation.report_store import ReportStore
from quorum.moderation.vote_ledger import VoteLedger
from quorum.security.audit_log import AuditLogger


class ModerationEngine:
    """Facade over the Report Store, Vote Ledger, consensus and override path."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: Settings,
        contents: Optional[ContentRegistry] = None,
        announcements: Optional[AnnouncementSink] = None,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        self.settings = settings
        self.sessions = session_factory
        self.contents = contents or ContentRegistry.from_session_factory(session_factory)
        self.announcements = announcements or PostStore(session_factory)
        self.audit = audit
        self.agents = AgentStore(session_factory)
        self.bans = BanStore(session_factory)

        self.executor = ResolutionExecutor(
            session_factory,
            self.contents,
            self.bans,
            self.announcements,
            audit=audit,
            reason_chars=settings.announcement_reason_chars,
        )
        self.consensus = ConsensusEvaluator(settings.threshold, self.executor, audit=audit)
        self.ledger = VoteLedger(session_factory, self.consensus)
        self.reports = ReportStore(
            session_factory,
            self.ledger,
            self.consensus,
            self.contents,
            reason_min_length=settings.reason_min_length,
            audit=audit,
        )
        self.admin = AdminOverride(session_factory, self.contents, self.bans, self.executor, audit=audit)

    @property
    def threshold(self) -> int:
        return self.consensus.threshold

    # -- participants --------------------------------------------------------

    def file_report(
        self, participant: Participant, target_type: str | TargetType, target_id: str, reason: str
    ) -> Report:
        require_participant(participant)
        return self.reports.file_report(participant.id, target_type, target_id, reason)

    def cast_vote(self, participant: Participant, report_id: str, choice: str | VoteChoice) -> VoteResult:
        require_participant(participant)
        return self.ledger.cast_vote(report_id, participant.id, choice)

    def get_report(self, report_id: str) -> Report:
        return self.reports.get_report(report_id)

    def list_reports(
        self, status: Optional[str | ReportStatus] = ReportStatus.pending, limit: Optional[int] = None
    ) -> list[Report]:
        return self.reports.list_reports(status=status, limit=self.settings.clamp_limit(limit))

    def get_votes(self, report_id: str) -> list[Vote]:
        self.reports.get_report(report_id)
        return self.ledger.get_votes(report_id)

    def is_banned(self, agent_id: str) -> bool:
        return self.bans.is_banned(agent_id)

    # -- override path -------------------------------------------------------

    def admin_delete(
        self, actor: Participant, target_type: str | TargetType, target_id: str, reason: Optional[str] = None
    ) -> AdminDeleteResult:
        return self.admin.admin_delete(actor, target_type, target_id, reason)

    def admin_ban(self, actor: Participant, agent_id: str, reason: Optional[str] = None) -> BannedAgent:
        return self.admin.admin_ban(actor, agent_id, reason)

    def admin_unban(self, actor: Participant, agent_id: str) -> None:
        self.admin.admin_unban(actor, agent_id)

    def admin_verdict(
        self, actor: Participant, report_id: str, outcome: str | Verdict, reason: Optional[str] = None
    ) -> Report:
        return self.admin.admin_verdict(actor, report_id, outcome, reason)


def build_engine(settings: Optional[Settings] = None) -> ModerationEngine:
    """Create the database (if needed) and a fully wired engine from settings."""
    settings = settings or get_settings()
    db_engine = create_db_engine(settings.database_url)
    init_db(db_engine)
    return ModerationEngine(
        make_session_factory(db_engine),
        settings,
        audit=AuditLogger(settings.audit_dir),
    )
