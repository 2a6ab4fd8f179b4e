"""Collaborator stores the engine deletes targets in and announces through."""

from quorum.content.stores import (
    AgentContentStore,
    AnnouncementSink,
    ContentRegistry,
    ContentStore,
    KnowledgeStore,
    PostStore,
    SkillStore,
)

__all__ = [
    "AgentContentStore",
    "AnnouncementSink",
    "ContentRegistry",
    "ContentStore",
    "KnowledgeStore",
    "PostStore",
    "SkillStore",
]
