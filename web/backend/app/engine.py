"""Shared ModerationEngine for the web backend."""

from __future__ import annotations

from typing import Optional

from quorum.moderation.engine import ModerationEngine, build_engine

_engine: Optional[ModerationEngine] = None


def get_engine() -> ModerationEngine:
    """Return the singleton ModerationEngine, building it on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine
