"""SQL-backed agent identity store.

Agents authenticate with an API key; only its SHA-256 hash is stored.
"""

from __future__ import annotations

import hashlib
import secrets
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from quorum.auth.models import Participant
from quorum.db.tables import AgentRow, BannedAgentRow, utcnow

KEY_PREFIX = "cq_"


class AgentStore:
    """Agents and their API keys."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._sessions = session_factory

    @staticmethod
    def _hash_key(raw_key: str) -> str:
        return hashlib.sha256(raw_key.encode()).hexdigest()

    @staticmethod
    def generate_key() -> str:
        return KEY_PREFIX + secrets.token_hex(32)

    @staticmethod
    def _participant(row: AgentRow, banned: bool) -> Participant:
        return Participant(id=row.id, name=row.name, is_admin=bool(row.is_admin), is_banned=banned)

    def create_agent(self, name: str, is_admin: bool = False) -> tuple[Participant, str]:
        """Register an agent.  Returns ``(participant, raw_key)``; the raw key is not kept."""
        raw_key = self.generate_key()
        row = AgentRow(
            name=name,
            api_key_hash=self._hash_key(raw_key),
            key_prefix=raw_key[:8],
            is_admin=is_admin,
        )
        with self._sessions.begin() as session:
            session.add(row)
            session.flush()
            participant = self._participant(row, banned=False)
        return participant, raw_key

    def _load(self, session: Session, *criteria) -> Optional[Participant]:
        stmt = (
            select(AgentRow, BannedAgentRow.agent_id)
            .outerjoin(BannedAgentRow, BannedAgentRow.agent_id == AgentRow.id)
            .where(*criteria)
        )
        found = session.execute(stmt).first()
        if found is None:
            return None
        row, banned_id = found
        return self._participant(row, banned=banned_id is not None)

    def get(self, agent_id: str) -> Optional[Participant]:
        with self._sessions() as session:
            return self._load(session, AgentRow.id == agent_id)

    def authenticate(self, raw_key: str) -> Optional[Participant]:
        """Resolve an API key to a participant and stamp ``last_seen``."""
        if not raw_key:
            return None
        key_hash = self._hash_key(raw_key)
        with self._sessions.begin() as session:
            participant = self._load(session, AgentRow.api_key_hash == key_hash)
            if participant is not None:
                session.get(AgentRow, participant.id).last_seen = utcnow()
            return participant
