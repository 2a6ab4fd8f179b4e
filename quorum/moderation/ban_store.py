"""BannedAgent records: at most one per agent, re-banning refreshes it."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from quorum.db.tables import BannedAgentRow, utcnow
from quorum.moderation.models import BannedAgent


def _upsert_statement(dialect_name: str, values: dict):
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        return None
    stmt = insert(BannedAgentRow).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=["agent_id"],
        set_={
            "reason": stmt.excluded.reason,
            "banned_by": stmt.excluded.banned_by,
            "banned_at": stmt.excluded.banned_at,
        },
    )


def _to_model(row: BannedAgentRow) -> BannedAgent:
    return BannedAgent(agent_id=row.agent_id, reason=row.reason, banned_by=row.banned_by, banned_at=row.banned_at)


class BanStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._sessions = session_factory

    def upsert(self, agent_id: str, reason: Optional[str], banned_by: Optional[str]) -> BannedAgent:
        """Create or refresh the ban record for *agent_id*."""
        values = {"agent_id": agent_id, "reason": reason, "banned_by": banned_by, "banned_at": utcnow()}
        with self._sessions.begin() as session:
            stmt = _upsert_statement(session.get_bind().dialect.name, values)
            if stmt is not None:
                session.execute(stmt)
            else:
                session.merge(BannedAgentRow(**values))
        return self.get(agent_id)

    def remove(self, agent_id: str) -> bool:
        """Lift a ban.  Returns False when there was none."""
        with self._sessions.begin() as session:
            result = session.execute(delete(BannedAgentRow).where(BannedAgentRow.agent_id == agent_id))
            return result.rowcount > 0

    def get(self, agent_id: str) -> Optional[BannedAgent]:
        with self._sessions() as session:
            row = session.get(BannedAgentRow, agent_id)
            return _to_model(row) if row is not None else None

    def is_banned(self, agent_id: str) -> bool:
        return self.get(agent_id) is not None

    def list_bans(self) -> list[BannedAgent]:
        with self._sessions() as session:
            stmt = select(BannedAgentRow).order_by(BannedAgentRow.banned_at.desc())
            return [_to_model(r) for r in session.execute(stmt).scalars()]
