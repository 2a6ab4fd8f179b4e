"""Shared fixtures: a file-backed SQLite engine per test."""

from __future__ import annotations

from pathlib import Path

import pytest

from quorum.config import Settings
from quorum.db.session import create_db_engine, init_db, make_session_factory
from quorum.moderation.engine import ModerationEngine
from quorum.security.audit_log import AuditLogger


def make_engine(base: Path, threshold: int = 3, **kwargs) -> ModerationEngine:
    settings = Settings(
        database_url=f"sqlite:///{base / 'quorum.db'}",
        threshold=threshold,
        audit_dir=str(base / "audit"),
    )
    db = create_db_engine(settings.database_url)
    init_db(db)
    return ModerationEngine(
        make_session_factory(db),
        settings,
        audit=AuditLogger(settings.audit_dir),
        **kwargs,
    )


@pytest.fixture
def engine(tmp_path) -> ModerationEngine:
    return make_engine(tmp_path)


@pytest.fixture
def agents(engine):
    """Five ordinary agents and one admin."""
    names = ["alice", "bob", "carol", "dave", "erin"]
    made = {name: engine.agents.create_agent(name)[0] for name in names}
    made["admin"] = engine.agents.create_agent("phil", is_admin=True)[0]
    return made


@pytest.fixture
def post_id(engine, agents):
    return engine.contents["post"].create(agents["erin"].id, "Buy cheap tokens at scam.example now!!!")
