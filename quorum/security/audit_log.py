"""Moderation audit trail.

Every terminal action and every failed resolution step is appended as
newline-delimited JSON to a daily file under the configured audit directory,
so an operator can see what happened and finish anything left half-done.
"""

from __future__ import annotations

import json
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class AuditEntry:
    """A single audit log entry."""

    id: str
    timestamp: str
    actor: str
    action: str
    resource_type: str
    resource_id: str
    details: dict[str, Any] = field(default_factory=dict)
    success: bool = True


class AuditLogger:
    """File-based JSONL audit logger."""

    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir).expanduser()
        self._base_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _current_log_file(self) -> Path:
        return self._base_dir / f"{datetime.now(timezone.utc).strftime('%Y-%m-%d')}.jsonl"

    def _read_all_entries(self) -> list[AuditEntry]:
        entries: list[AuditEntry] = []
        for path in sorted(self._base_dir.glob("*.jsonl")):
            for line in path.read_text(encoding="utf-8").splitlines():
                if not line.strip():
                    continue
                try:
                    entries.append(AuditEntry(**json.loads(line)))
                except (json.JSONDecodeError, TypeError):
                    logger.warning("audit_line_unreadable", path=str(path))
        return entries

    def log_event(
        self,
        actor: str,
        action: str,
        resource_type: str,
        resource_id: str,
        details: Optional[dict[str, Any]] = None,
        success: bool = True,
    ) -> AuditEntry:
        """Record an audit event and return the created entry."""
        entry = AuditEntry(
            id=uuid.uuid4().hex[:16],
            timestamp=datetime.now(timezone.utc).isoformat(),
            actor=actor or "",
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details or {},
            success=success,
        )
        line = json.dumps(asdict(entry), default=str) + "\n"
        with self._lock, self._current_log_file().open("a", encoding="utf-8") as fh:
            fh.write(line)
        return entry

    def get_events(
        self,
        *,
        actor: Optional[str] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        success: Optional[bool] = None,
        limit: int = 200,
    ) -> list[AuditEntry]:
        """Return filtered audit events, newest first."""
        entries = self._read_all_entries()

        if actor:
            entries = [e for e in entries if e.actor == actor]
        if action:
            entries = [e for e in entries if e.action == action]
        if resource_type:
            entries = [e for e in entries if e.resource_type == resource_type]
        if resource_id:
            entries = [e for e in entries if e.resource_id == resource_id]
        if success is not None:
            entries = [e for e in entries if e.success is success]

        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[:limit]


def record_event(audit: Optional[AuditLogger], **event: Any) -> Optional[AuditEntry]:
    """Write an audit event without letting the write fail the caller.

    Moderation actions have usually committed by the time they are audited,
    so a failed write (unwritable directory, full disk) is logged and dropped.

    Parameters
    ----------
    audit:
        The audit logger, or ``None`` when auditing is off.
    **event:
        Keyword arguments for ``AuditLogger.log_event``.

    Returns
    -------
    AuditEntry or None
        The written entry, or ``None`` if nothing was written.
    """
    if audit is None:
        return None
    try:
        return audit.log_event(**event)
    except OSError:
        logger.exception("audit_write_failed", action=event.get("action"))
        return None
