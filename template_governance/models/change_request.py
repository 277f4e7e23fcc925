"""
Template Version Governance Service
Change request domain models.

Models:
    - ChangeRequest:        one proposed change of a category's default template
    - StakeholderApproval:  one required sign-off per role, owned by a ChangeRequest

Lifecycle:
    ChangeRequest:  pending_approval → pending_confirmation → deployed
                    pending_approval | pending_confirmation → cancelled
                    pending_confirmation → failed

``active_category`` mirrors ``category`` while the request is non-terminal
and is NULL afterwards.  Its unique constraint is what guarantees a single
active request per category across processes.
"""

import uuid
from datetime import datetime, timezone

from template_governance.models import db


# ── Constants ────────────────────────────────────────────────────────────────

REQUEST_STATUSES = {
    "pending_approval", "pending_confirmation",
    "deployed", "failed", "cancelled",
}

TERMINAL_STATUSES = {"deployed", "failed", "cancelled"}

RISK_LEVELS = ("low", "medium", "high", "critical")

REQUEST_TRANSITIONS = {
    "pending_approval":     ["pending_confirmation", "cancelled"],
    "pending_confirmation": ["deployed", "failed", "cancelled"],
    "deployed":             [],
    "failed":               [],
    "cancelled":            [],
}


def validate_request_transition(old_status, new_status):
    """Return True if ChangeRequest status transition is valid."""
    return new_status in REQUEST_TRANSITIONS.get(old_status, [])


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class ChangeRequest(db.Model):
    """A proposed change of the default template for one category."""

    __tablename__ = "change_requests"
    __table_args__ = (
        db.UniqueConstraint("active_category", name="uq_change_requests_active_category"),
        db.Index("idx_change_requests_category_status", "category", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    category = db.Column(db.String(20), nullable=False)
    from_version = db.Column(db.String(64), nullable=False)
    to_version = db.Column(
        db.String(64),
        db.ForeignKey("template_versions.version_id", ondelete="RESTRICT"),
        nullable=False,
    )
    active_category = db.Column(
        db.String(20), nullable=True,
        comment="= category while non-terminal, NULL once terminal",
    )

    change_reason = db.Column(db.Text, nullable=False)
    requested_by = db.Column(db.String(150), nullable=False)
    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    # Impact assessment
    risk_level = db.Column(db.String(20), nullable=False, comment="low | medium | high | critical")
    change_kind = db.Column(db.String(10), nullable=False, default="patch", comment="major | minor | patch")
    breaking_changes = db.Column(db.JSON, nullable=False, default=list)
    user_impact_summary = db.Column(db.Text, default="")
    rollback_time_estimate = db.Column(db.String(40), nullable=False)
    data_migration_required = db.Column(db.Boolean, nullable=False, default=False)
    user_training_required = db.Column(db.Boolean, nullable=False, default=False)
    rollback_safe = db.Column(db.Boolean, nullable=False, default=True)
    emergency_contact = db.Column(db.String(255), nullable=True)

    confirmation_text = db.Column(db.Text, nullable=False, comment="Verbatim; never regenerated")
    confirmation_clauses = db.Column(db.JSON, nullable=False, default=list,
                                     comment="confirmation_text split at clause boundaries")

    # Safety checks (latest run)
    safety_checks_passed = db.Column(db.Boolean, nullable=False, default=False)
    safety_results = db.Column(db.JSON, nullable=False, default=list)
    safety_checked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(30), nullable=False, default="pending_approval")
    mismatch_count = db.Column(db.Integer, nullable=False, default=0)

    confirmed_by = db.Column(db.String(150), nullable=True)
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deployed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by = db.Column(db.String(150), nullable=True)
    cancelled_reason = db.Column(db.Text, nullable=True)
    failure_reason = db.Column(db.Text, nullable=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    approvals = db.relationship(
        "StakeholderApproval",
        backref="change_request",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="StakeholderApproval.sequence",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def blocking_failures(self) -> list[dict]:
        return [
            r for r in (self.safety_results or [])
            if r.get("severity") == "blocking" and not r.get("passed")
        ]

    @property
    def safety_warnings(self) -> list[dict]:
        return [
            r for r in (self.safety_results or [])
            if r.get("severity") == "warning" and not r.get("passed")
        ]

    def to_dict(self, include_approvals=True):
        d = {
            "id": self.id,
            "category": self.category,
            "from_version": self.from_version,
            "to_version": self.to_version,
            "change_reason": self.change_reason,
            "requested_by": self.requested_by,
            "requested_at": _iso(self.requested_at),
            "risk_level": self.risk_level,
            "change_kind": self.change_kind,
            "breaking_changes": self.breaking_changes or [],
            "user_impact_summary": self.user_impact_summary,
            "rollback_time_estimate": self.rollback_time_estimate,
            "data_migration_required": self.data_migration_required,
            "user_training_required": self.user_training_required,
            "rollback_safe": self.rollback_safe,
            "emergency_contact": self.emergency_contact,
            "confirmation_text": self.confirmation_text,
            "safety_checks_passed": self.safety_checks_passed,
            "safety_results": self.safety_results or [],
            "safety_warnings": self.safety_warnings,
            "safety_checked_at": _iso(self.safety_checked_at),
            "status": self.status,
            "mismatch_count": self.mismatch_count,
            "confirmed_by": self.confirmed_by,
            "confirmed_at": _iso(self.confirmed_at),
            "deployed_at": _iso(self.deployed_at),
            "cancelled_by": self.cancelled_by,
            "cancelled_reason": self.cancelled_reason,
            "failure_reason": self.failure_reason,
            "closed_at": _iso(self.closed_at),
        }
        if include_approvals:
            d["approvals"] = [a.to_dict() for a in self.approvals]
        return d

    def __repr__(self):
        return f"<ChangeRequest {self.id[:8]} {self.category} {self.from_version}→{self.to_version} [{self.status}]>"


class StakeholderApproval(db.Model):
    """One required approval; written once when the stakeholder approves."""

    __tablename__ = "stakeholder_approvals"
    __table_args__ = (
        db.UniqueConstraint("request_id", "stakeholder_role", name="uq_approval_request_role"),
    )

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(
        db.String(36),
        db.ForeignKey("change_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stakeholder_role = db.Column(db.String(40), nullable=False)
    stakeholder_name = db.Column(db.String(150), nullable=False, default="")
    stakeholder_email = db.Column(db.String(255), nullable=False, comment="Approver identity")
    sequence = db.Column(db.Integer, nullable=False, default=0, comment="Display order only")
    required = db.Column(db.Boolean, nullable=False, default=True)
    approved = db.Column(db.Boolean, nullable=False, default=False)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approval_notes = db.Column(db.Text, nullable=True)
    conditions = db.Column(db.JSON, nullable=False, default=list)

    def to_dict(self):
        return {
            "id": self.id,
            "request_id": self.request_id,
            "stakeholder_role": self.stakeholder_role,
            "stakeholder_name": self.stakeholder_name,
            "stakeholder_email": self.stakeholder_email,
            "required": self.required,
            "approved": self.approved,
            "approved_at": _iso(self.approved_at),
            "approval_notes": self.approval_notes,
            "conditions": self.conditions or [],
        }

    def __repr__(self):
        mark = "✓" if self.approved else "…"
        return f"<StakeholderApproval {self.stakeholder_role} {mark}>"
