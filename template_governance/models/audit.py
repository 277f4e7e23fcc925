"""
Template Version Governance Service
Audit domain model.

Models:
    - AuditLog: immutable, append-only audit trail for governance events.
"""

import json
from datetime import UTC, datetime

from template_governance.models import db


# ── Constants ────────────────────────────────────────────────────────────────

AUDIT_ENTITY_TYPES = {"change_request", "template_default", "template_version"}

AUDIT_ACTIONS = {
    # Change request lifecycle
    "change_request.created",
    "change_request.approved",
    "change_request.ready_for_confirmation",
    "change_request.quorum_blocked",
    "change_request.confirmation_mismatch",
    "change_request.safety_check_failed",
    "change_request.safety_rechecked",
    "change_request.deployed",
    "change_request.failed",
    "change_request.emergency_rollback_failed",
    "change_request.cancelled",
    # Registry
    "template_default.seeded",
    "template_version.registered",
}


class AuditLog(db.Model):
    """
    Immutable audit trail for every governance event.

    One row per event.  ``diff_json`` carries the event payload
    (status change, approver, failing checks, …).
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_entity", "entity_type", "entity_id"),
        db.Index("idx_audit_category", "category"),
        db.Index("idx_audit_actor", "actor"),
        db.Index("idx_audit_action", "action"),
        db.Index("idx_audit_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(20), nullable=True, comment="invoice | estimate | receipt")

    # Polymorphic entity reference
    entity_type = db.Column(
        db.String(30), nullable=False,
        comment="change_request | template_default | template_version",
    )
    entity_id = db.Column(
        db.String(64), nullable=False,
        comment="Request UUID, category or version id",
    )

    # What happened
    action = db.Column(
        db.String(60), nullable=False,
        comment="change_request.approved | change_request.deployed | …",
    )
    actor = db.Column(db.String(150), nullable=False, default="system")
    request_id = db.Column(db.String(64), nullable=True, comment="HTTP X-Request-ID, when in a request")

    diff_json = db.Column(db.Text, default="{}")

    # Timestamp (immutable)
    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(UTC),
    )

    # ── Helpers ──────────────────────────────────────────────────────────

    @property
    def diff(self) -> dict:
        """Deserialise *diff_json* to a Python dict."""
        try:
            return json.loads(self.diff_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "actor": self.actor,
            "request_id": self.request_id,
            "diff": self.diff,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_audit(
    *,
    entity_type: str,
    entity_id: str,
    action: str,
    actor: str = "system",
    category: str | None = None,
    diff: dict | None = None,
    timestamp: datetime | None = None,
) -> AuditLog:
    """
    Append a single audit row.  Uses ``flush`` so callers keep
    transaction control.

    Returns the (flushed) AuditLog instance.
    """
    from flask import g, has_request_context

    request_id = getattr(g, "request_id", None) if has_request_context() else None

    log = AuditLog(
        category=category,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        actor=actor,
        request_id=request_id,
        diff_json=json.dumps(diff or {}, default=str),
    )
    if timestamp is not None:
        log.timestamp = timestamp
    db.session.add(log)
    db.session.flush()
    return log
