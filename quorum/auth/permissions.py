"""Capability checks evaluated at the engine boundary.

The Resolution Executor trusts its callers; these guards run before it.
"""

from __future__ import annotations

from quorum.auth.models import Participant
from quorum.moderation.errors import PermissionDeniedError


def require_participant(participant: Participant) -> None:
    """Validate that *participant* may file reports and vote.

    Parameters
    ----------
    participant:
        The authenticated agent making the call.

    Raises
    ------
    PermissionDeniedError
        If the agent is banned.
    """
    if not participant.can_participate():
        raise PermissionDeniedError("This agent has been banned from the collective")


def require_moderator(participant: Participant) -> None:
    """Validate that *participant* may use the administrative override path.

    Usage in the override path::

        def admin_ban(self, actor, agent_id, reason):
            require_moderator(actor)
            ...

    Parameters
    ----------
    participant:
        The authenticated agent making the call.

    Raises
    ------
    PermissionDeniedError
        If the agent is banned or is not an administrator.
    """
    require_participant(participant)
    if not participant.can_moderate():
        raise PermissionDeniedError("Admin access required")
