"""
Template Version Governance Service
Template registry domain models.

Models:
    - TemplateVersion:      immutable descriptor of one template artifact
    - TemplateDefault:      current-default pointer, one row per category
    - VersionHistoryEntry:  append-only ledger of default changes per category

Architecture:
    TemplateDefault(category) ──▶ TemplateVersion
    VersionHistoryEntry(category, sequence) ──▶ ChangeRequest (nullable)

The pointer row is only ever written by the version registry's
compare-and-swap (or its emergency rollback).  Ledger rows are never
updated or deleted.
"""

from datetime import datetime, timezone

from template_governance.models import db


# ── Constants ────────────────────────────────────────────────────────────────

TEMPLATE_CATEGORIES = {"invoice", "estimate", "receipt"}

VALIDATION_STATUSES = {"pending", "passed", "failed"}

HISTORY_ACTIONS = {"created", "set_default", "rollback", "deprecated"}

ACCEPTANCE_CHECKLIST_KEYS = (
    "pdf_fidelity",
    "dark_mode_support",
    "rtl_ready",
    "no_dynamic_js",
    "accessibility_compliant",
    "print_optimized",
)


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


def make_version_id(category: str, version_number: str) -> str:
    """``invoice`` + ``1.1.0`` → ``invoice_v1.1.0``."""
    return f"{category}_v{version_number}"


class TemplateVersion(db.Model):
    """
    A registered template artifact.

    The artifact itself is opaque; only its metadata drives impact
    assessment and safety checks.
    """

    __tablename__ = "template_versions"
    __table_args__ = (
        db.UniqueConstraint("category", "version_number", name="uq_template_version_number"),
        db.Index("idx_template_versions_category", "category"),
    )

    version_id = db.Column(db.String(64), primary_key=True, comment="e.g. invoice_v1.1.0")
    category = db.Column(db.String(20), nullable=False, comment="invoice | estimate | receipt")
    version_number = db.Column(db.String(20), nullable=False, comment="MAJOR.MINOR.PATCH")
    title = db.Column(db.String(200), nullable=False, default="")
    description = db.Column(db.Text, default="")
    change_summary = db.Column(db.Text, default="")
    template_hash = db.Column(db.String(128), nullable=True)
    validation_status = db.Column(db.String(20), nullable=False, default="pending")
    acceptance_checklist = db.Column(db.JSON, nullable=False, default=dict)
    breaking_changes = db.Column(db.JSON, nullable=False, default=list)
    data_migration_required = db.Column(db.Boolean, nullable=False, default=False)
    user_training_required = db.Column(db.Boolean, nullable=False, default=False)
    user_impact = db.Column(db.Text, nullable=True)
    rollback_safe = db.Column(db.Boolean, nullable=False, default=True)

    # Performance / quality metadata reported by the build
    bundle_size_kb = db.Column(db.Float, nullable=True)
    render_time_ms = db.Column(db.Float, nullable=True)
    accessibility_score = db.Column(db.Integer, nullable=True)
    print_fidelity_score = db.Column(db.Integer, nullable=True)

    created_by = db.Column(db.String(150), nullable=False, default="system")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "version_id": self.version_id,
            "category": self.category,
            "version_number": self.version_number,
            "title": self.title,
            "description": self.description,
            "change_summary": self.change_summary,
            "template_hash": self.template_hash,
            "validation_status": self.validation_status,
            "acceptance_checklist": self.acceptance_checklist or {},
            "breaking_changes": self.breaking_changes or [],
            "data_migration_required": self.data_migration_required,
            "user_training_required": self.user_training_required,
            "user_impact": self.user_impact,
            "rollback_safe": self.rollback_safe,
            "bundle_size_kb": self.bundle_size_kb,
            "render_time_ms": self.render_time_ms,
            "accessibility_score": self.accessibility_score,
            "print_fidelity_score": self.print_fidelity_score,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<TemplateVersion {self.version_id} [{self.validation_status}]>"


class TemplateDefault(db.Model):
    """Current-default pointer for one category."""

    __tablename__ = "template_defaults"

    category = db.Column(db.String(20), primary_key=True)
    version_id = db.Column(
        db.String(64),
        db.ForeignKey("template_versions.version_id", ondelete="RESTRICT"),
        nullable=False,
    )
    revision = db.Column(
        db.Integer, nullable=False, default=1,
        comment="Incremented by every pointer write",
    )
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "category": self.category,
            "version_id": self.version_id,
            "revision": self.revision,
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<TemplateDefault {self.category} → {self.version_id} r{self.revision}>"


class VersionHistoryEntry(db.Model):
    """
    One ledger row per default change.

    Carries the full transaction context of the change: who requested,
    who approved, the literal confirmation text, and the safety results.
    """

    __tablename__ = "version_history"
    __table_args__ = (
        db.UniqueConstraint("category", "sequence", name="uq_version_history_sequence"),
    )

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(20), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False, comment="Per-category, commit order")
    action = db.Column(db.String(20), nullable=False, comment="created | set_default | rollback | deprecated")
    from_version = db.Column(db.String(64), nullable=True)
    to_version = db.Column(db.String(64), nullable=False)
    request_id = db.Column(
        db.String(36),
        db.ForeignKey("change_requests.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    change_reason = db.Column(db.Text, default="")
    impact_level = db.Column(db.String(20), nullable=True)
    breaking_changes = db.Column(db.JSON, nullable=False, default=list)

    requested_by = db.Column(db.String(150), nullable=False, default="system")
    approved_by = db.Column(db.JSON, nullable=False, default=list)
    confirmed_by = db.Column(db.String(150), nullable=True)
    confirmation_text = db.Column(db.Text, nullable=True, comment="Literal text typed by the confirmer")

    requested_at = db.Column(db.DateTime(timezone=True), nullable=True)
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deployed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    rollback_safe = db.Column(db.Boolean, nullable=False, default=True)
    emergency_contact = db.Column(db.String(255), nullable=True)
    safety_checks_passed = db.Column(db.Boolean, nullable=False, default=True)
    acceptance_checklist_passed = db.Column(db.Boolean, nullable=False, default=True)
    safety_results = db.Column(db.JSON, nullable=False, default=list)

    def to_dict(self):
        return {
            "entry_id": self.id,
            "category": self.category,
            "sequence": self.sequence,
            "action": self.action,
            "from_version": self.from_version,
            "to_version": self.to_version,
            "request_id": self.request_id,
            "change_reason": self.change_reason,
            "impact_level": self.impact_level,
            "breaking_changes": self.breaking_changes or [],
            "requested_by": self.requested_by,
            "approved_by": self.approved_by or [],
            "confirmed_by": self.confirmed_by,
            "confirmation_text": self.confirmation_text,
            "requested_at": _iso(self.requested_at),
            "confirmed_at": _iso(self.confirmed_at),
            "deployed_at": _iso(self.deployed_at),
            "rollback_safe": self.rollback_safe,
            "emergency_contact": self.emergency_contact,
            "safety_checks_passed": self.safety_checks_passed,
            "acceptance_checklist_passed": self.acceptance_checklist_passed,
            "safety_results": self.safety_results or [],
        }

    def __repr__(self):
        return f"<VersionHistoryEntry {self.category}#{self.sequence} {self.action} → {self.to_version}>"
