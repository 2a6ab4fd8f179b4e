"""Content stores at their interface boundary.

Each store answers ``exists``/``label`` and performs an idempotent ``delete``.
The engine only ever reaches a table through the fixed ``TargetType`` mapping
in ``ContentRegistry``.
"""

from __future__ import annotations

from typing import Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from quorum.db.tables import AgentRow, KnowledgeRow, PostRow, SkillRow
from quorum.moderation.models import TargetType

LABEL_CHARS = 80


class ContentStore(Protocol):
    def exists(self, target_id: str) -> bool: ...

    def delete(self, target_id: str) -> bool: ...

    def label(self, target_id: str) -> Optional[str]: ...


class AnnouncementSink(Protocol):
    def publish(self, author_id: str, text: str, kind: str = "announcement") -> None: ...


def _short(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = " ".join(text.split())
    return text if len(text) <= LABEL_CHARS else text[: LABEL_CHARS - 3] + "..."


class _SqlContentStore:
    """Shared implementation over one mapped table and its label column."""

    model: type = None
    label_column: str = ""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._sessions = session_factory

    def exists(self, target_id: str) -> bool:
        with self._sessions() as session:
            return session.get(self.model, target_id) is not None

    def delete(self, target_id: str) -> bool:
        """Delete *target_id*.  Deleting an absent id is not an error."""
        with self._sessions.begin() as session:
            result = session.execute(delete(self.model).where(self.model.id == target_id))
            return result.rowcount > 0

    def label(self, target_id: str) -> Optional[str]:
        column = getattr(self.model, self.label_column)
        with self._sessions() as session:
            value = session.execute(select(column).where(self.model.id == target_id)).scalar_one_or_none()
        return _short(value)


class PostStore(_SqlContentStore):
    """Social feed posts; also the announcement sink."""

    model = PostRow
    label_column = "content"

    def create(self, agent_id: Optional[str], content: str, kind: str = "post") -> str:
        row = PostRow(agent_id=agent_id, content=content, type=kind)
        with self._sessions.begin() as session:
            session.add(row)
            session.flush()
            return row.id

    def publish(self, author_id: str, text: str, kind: str = "announcement") -> None:
        self.create(author_id, text, kind=kind)

    def list_by_kind(self, kind: str) -> list[PostRow]:
        with self._sessions() as session:
            stmt = select(PostRow).where(PostRow.type == kind).order_by(PostRow.created_at)
            return list(session.execute(stmt).scalars())


class SkillStore(_SqlContentStore):
    model = SkillRow
    label_column = "name"

    def create(self, agent_id: Optional[str], name: str) -> str:
        row = SkillRow(agent_id=agent_id, name=name)
        with self._sessions.begin() as session:
            session.add(row)
            session.flush()
            return row.id


class KnowledgeStore(_SqlContentStore):
    model = KnowledgeRow
    label_column = "title"

    def create(self, agent_id: Optional[str], title: str, content: str = "") -> str:
        row = KnowledgeRow(agent_id=agent_id, title=title, content=content)
        with self._sessions.begin() as session:
            session.add(row)
            session.flush()
            return row.id


class AgentContentStore(_SqlContentStore):
    """Agents as report targets (identity lives in ``quorum.auth.store``)."""

    model = AgentRow
    label_column = "name"


class ContentRegistry:
    """Maps each ``TargetType`` to the store that owns it."""

    def __init__(self, stores: dict[TargetType, ContentStore]) -> None:
        missing = set(TargetType) - set(stores)
        if missing:
            raise ValueError(f"No content store for: {', '.join(sorted(t.value for t in missing))}")
        self._stores = dict(stores)

    @classmethod
    def from_session_factory(cls, session_factory: sessionmaker[Session]) -> "ContentRegistry":
        return cls(
            {
                TargetType.post: PostStore(session_factory),
                TargetType.skill: SkillStore(session_factory),
                TargetType.knowledge: KnowledgeStore(session_factory),
                TargetType.agent: AgentContentStore(session_factory),
            }
        )

    def __getitem__(self, target_type: TargetType) -> ContentStore:
        return self._stores[TargetType(target_type)]
