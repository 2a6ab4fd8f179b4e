"""Data models for the community moderation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class TargetType(str, Enum):
    """Kinds of entity a report can point at."""

    post = "post"
    skill = "skill"
    knowledge = "knowledge"
    agent = "agent"


class ReportStatus(str, Enum):
    """pending -> confirmed | dismissed; terminal once non-pending."""

    pending = "pending"
    confirmed = "confirmed"
    dismissed = "dismissed"


class VoteChoice(str, Enum):
    confirm = "confirm"
    dismiss = "dismiss"


class Verdict(str, Enum):
    """Outcome an administrator can impose on a pending report."""

    confirmed = "confirmed"
    dismissed = "dismissed"


@dataclass
class Report:
    """An accusation against a target, with its running tallies."""

    id: str
    reporter_id: Optional[str]
    target_type: TargetType
    target_id: str
    reason: str
    status: ReportStatus = ReportStatus.pending
    votes_confirm: int = 0
    votes_dismiss: int = 0
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    # Listing extras, filled by list_reports.
    reporter_name: Optional[str] = None
    target_preview: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.target_type, str):
            self.target_type = TargetType(self.target_type)
        if isinstance(self.status, str):
            self.status = ReportStatus(self.status)


@dataclass
class Vote:
    report_id: str
    voter_id: str
    vote: VoteChoice
    created_at: Optional[datetime] = None


@dataclass
class BannedAgent:
    agent_id: str
    reason: Optional[str] = None
    banned_by: Optional[str] = None
    banned_at: Optional[datetime] = None


@dataclass
class VoteResult:
    """Tallies after a vote.  ``resolved`` is true only for the tipping vote."""

    report_id: str
    votes_confirm: int
    votes_dismiss: int
    status: ReportStatus
    resolved: bool = False
    needed_for_confirm: int = 0


@dataclass
class StepResult:
    """Outcome of one resolution side effect."""

    step: str
    ok: bool = True
    detail: str = ""


@dataclass
class ResolutionOutcome:
    """Everything the Resolution Executor did for one terminal action."""

    target_type: TargetType
    target_id: str
    actor_id: str
    report_id: Optional[str] = None
    steps: list[StepResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(s.ok for s in self.steps)

    @property
    def failed_steps(self) -> list[str]:
        return [s.step for s in self.steps if not s.ok]

    def step(self, name: str) -> Optional[StepResult]:
        for s in self.steps:
            if s.step == name:
                return s
        return None


@dataclass
class AdminDeleteResult:
    target_type: TargetType
    target_id: str
    label: Optional[str] = None
    already_deleted: bool = False
    outcome: Optional[ResolutionOutcome] = None
