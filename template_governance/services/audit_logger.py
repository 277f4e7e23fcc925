"""
Audit logger: one audit event per governance state change.

Each event is written to ``audit_logs`` inside a savepoint, so a failed
audit insert never rolls back the governance change it describes.  Writes
are retried; if the sink stays unavailable the event is kept in an
in-process buffer, logged at ERROR with its full payload, and replayed
ahead of the next event.  The governance operation itself never fails
because of auditing.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from template_governance.models import db
from template_governance.models.audit import write_audit

logger = logging.getLogger(__name__)


@dataclass
class AuditEvent:
    action: str
    entity_type: str
    entity_id: str
    actor: str = "system"
    category: str | None = None
    diff: dict = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AuditLogger:
    """Savepoint-isolated, retrying audit writer with a local fallback buffer."""

    def __init__(self, attempts: int | None = None) -> None:
        self._attempts = attempts
        self._pending: list[AuditEvent] = []
        self._lock = threading.Lock()

    @property
    def attempts(self) -> int:
        if self._attempts is not None:
            return self._attempts
        return current_app.config.get("AUDIT_RETRY_ATTEMPTS", 3)

    @property
    def pending(self) -> list[AuditEvent]:
        with self._lock:
            return list(self._pending)

    def log(self, action: str, *, entity_type: str, entity_id: str, actor: str = "system",
            category: str | None = None, diff: dict | None = None) -> bool:
        """Record one event.  Returns False if it had to be buffered."""
        event = AuditEvent(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor=actor,
            category=category,
            diff=diff or {},
        )
        self.flush_pending()
        if self._write(event):
            return True
        with self._lock:
            self._pending.append(event)
        logger.error(
            "Audit sink unavailable; buffered %s for %s/%s: %s",
            event.action, event.entity_type, event.entity_id, event.diff,
            extra={"category": category, "event_type": action},
        )
        return False

    def flush_pending(self) -> int:
        """Replay buffered events in order; stops at the first failure."""
        with self._lock:
            queued, self._pending = self._pending, []
        written = 0
        for index, event in enumerate(queued):
            if not self._write(event):
                with self._lock:
                    self._pending = queued[index:] + self._pending
                break
            written += 1
        if written:
            logger.info("Replayed %d buffered audit events", written)
        return written

    def _write(self, event: AuditEvent) -> bool:
        for attempt in range(1, max(self.attempts, 1) + 1):
            try:
                with db.session.begin_nested():
                    self._insert(event)
                return True
            except SQLAlchemyError as exc:
                logger.warning(
                    "Audit write failed (attempt %d/%d) for %s: %s",
                    attempt, self.attempts, event.action, exc,
                )
        return False

    def _insert(self, event: AuditEvent) -> None:
        write_audit(
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            action=event.action,
            actor=event.actor,
            category=event.category,
            diff=event.diff,
            timestamp=event.occurred_at,
        )


_default_audit_logger: AuditLogger | None = None


def get_audit_logger() -> AuditLogger:
    """Process-wide logger; its buffer outlives individual requests."""
    global _default_audit_logger
    if _default_audit_logger is None:
        _default_audit_logger = AuditLogger()
    return _default_audit_logger
