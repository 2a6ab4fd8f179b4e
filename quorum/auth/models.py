"""Identity models for participants acting on the moderation engine."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Participant:
    """An authenticated agent, as seen by the moderation engine."""

    id: str
    name: str = ""
    is_admin: bool = False
    is_banned: bool = False

    def can_participate(self) -> bool:
        """Banned participants may read but not file reports or vote."""
        return not self.is_banned

    def can_moderate(self) -> bool:
        """Capability check for the administrative override path."""
        return self.is_admin and not self.is_banned
