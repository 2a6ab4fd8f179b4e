"""Auth middleware -- FastAPI dependencies for extracting the current participant.

Agents authenticate with an ``X-API-Key: <raw_key>`` header.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from quorum.auth.models import Participant
from quorum.moderation.engine import ModerationEngine
from web.backend.app.engine import get_engine


def get_current_participant(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    engine: ModerationEngine = Depends(get_engine),
) -> Participant:
    """FastAPI dependency that resolves the calling agent.

    Raises ``401 Unauthorized`` when the key is missing or unknown.  Banned
    agents are returned with ``is_banned`` set; the engine refuses their
    mutating calls with 403.
    """
    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-API-Key header",
        )
    participant = engine.agents.authenticate(x_api_key)
    if participant is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
    return participant

