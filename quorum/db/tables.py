"""Mapped tables.

``reports``, ``report_votes``, ``banned_agents`` and ``removed_targets``
belong to the moderation engine.  ``agents``, ``posts``, ``skills`` and
``knowledge`` are the collaborator stores the engine reads labels from and
deletes targets in; they carry only the columns the engine needs.  Agent
references are plain ids, not foreign keys, so removing an agent never touches
moderation history.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from quorum.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


_OPEN = text("status = 'pending'")


class ReportRow(Base):
    __tablename__ = "reports"
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'confirmed', 'dismissed')", name="ck_reports_status"),
        CheckConstraint("votes_confirm >= 0 AND votes_dismiss >= 0", name="ck_reports_votes"),
        Index("ix_reports_status", "status"),
        Index("ix_reports_target", "target_type", "target_id"),
        # At most one open report per reporter per target.
        Index(
            "uq_reports_open_per_reporter",
            "reporter_id",
            "target_type",
            "target_id",
            unique=True,
            sqlite_where=_OPEN,
            postgresql_where=_OPEN,
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    reporter_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    votes_confirm: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    votes_dismiss: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)


class ReportVoteRow(Base):
    __tablename__ = "report_votes"
    __table_args__ = (
        CheckConstraint("vote IN ('confirm', 'dismiss')", name="ck_report_votes_vote"),
    )

    # Composite primary key: one vote per agent per report.
    report_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("reports.id", ondelete="CASCADE"), primary_key=True
    )
    agent_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    vote: Mapped[str] = mapped_column(String(10), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class BannedAgentRow(Base):
    __tablename__ = "banned_agents"

    agent_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    banned_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    banned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class RemovedTargetRow(Base):
    """Tombstone for a target the engine deleted, so retries stay idempotent."""

    __tablename__ = "removed_targets"

    target_type: Mapped[str] = mapped_column(String(20), primary_key=True)
    target_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    removed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    removed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# -- collaborator stores -----------------------------------------------------


class AgentRow(Base):
    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    api_key_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    key_prefix: Mapped[str] = mapped_column(String(12), nullable=False, default="")
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_seen: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class PostRow(Base):
    __tablename__ = "posts"
    __table_args__ = (Index("ix_posts_type", "type"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    agent_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="post")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class SkillRow(Base):
    __tablename__ = "skills"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    agent_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class KnowledgeRow(Base):
    __tablename__ = "knowledge"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    agent_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
