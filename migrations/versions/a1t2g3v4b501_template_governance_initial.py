"""Template governance: registry, change requests, approvals, ledger, audit, notifications

Revision ID: a1t2g3v4b501
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "a1t2g3v4b501"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "template_versions",
        sa.Column("version_id", sa.String(64), primary_key=True),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("version_number", sa.String(20), nullable=False),
        sa.Column("title", sa.String(200), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), server_default=""),
        sa.Column("change_summary", sa.Text(), server_default=""),
        sa.Column("template_hash", sa.String(128)),
        sa.Column("validation_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("acceptance_checklist", sa.JSON(), nullable=False),
        sa.Column("breaking_changes", sa.JSON(), nullable=False),
        sa.Column("data_migration_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("user_training_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("user_impact", sa.Text()),
        sa.Column("rollback_safe", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("bundle_size_kb", sa.Float()),
        sa.Column("render_time_ms", sa.Float()),
        sa.Column("accessibility_score", sa.Integer()),
        sa.Column("print_fidelity_score", sa.Integer()),
        sa.Column("created_by", sa.String(150), nullable=False, server_default="system"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("category", "version_number", name="uq_template_version_number"),
    )
    op.create_index("idx_template_versions_category", "template_versions", ["category"])

    op.create_table(
        "template_defaults",
        sa.Column("category", sa.String(20), primary_key=True),
        sa.Column("version_id", sa.String(64),
                  sa.ForeignKey("template_versions.version_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "change_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("from_version", sa.String(64), nullable=False),
        sa.Column("to_version", sa.String(64),
                  sa.ForeignKey("template_versions.version_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("active_category", sa.String(20)),
        sa.Column("change_reason", sa.Text(), nullable=False),
        sa.Column("requested_by", sa.String(150), nullable=False),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("risk_level", sa.String(20), nullable=False),
        sa.Column("change_kind", sa.String(10), nullable=False, server_default="patch"),
        sa.Column("breaking_changes", sa.JSON(), nullable=False),
        sa.Column("user_impact_summary", sa.Text(), server_default=""),
        sa.Column("rollback_time_estimate", sa.String(40), nullable=False),
        sa.Column("data_migration_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("user_training_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("rollback_safe", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("emergency_contact", sa.String(255)),
        sa.Column("confirmation_text", sa.Text(), nullable=False),
        sa.Column("confirmation_clauses", sa.JSON(), nullable=False),
        sa.Column("safety_checks_passed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("safety_results", sa.JSON(), nullable=False),
        sa.Column("safety_checked_at", sa.DateTime(timezone=True)),
        sa.Column("status", sa.String(30), nullable=False, server_default="pending_approval"),
        sa.Column("mismatch_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("confirmed_by", sa.String(150)),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("deployed_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_by", sa.String(150)),
        sa.Column("cancelled_reason", sa.Text()),
        sa.Column("failure_reason", sa.Text()),
        sa.Column("closed_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("active_category", name="uq_change_requests_active_category"),
    )
    op.create_index("idx_change_requests_category_status", "change_requests", ["category", "status"])

    op.create_table(
        "stakeholder_approvals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("request_id", sa.String(36),
                  sa.ForeignKey("change_requests.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("stakeholder_role", sa.String(40), nullable=False),
        sa.Column("stakeholder_name", sa.String(150), nullable=False, server_default=""),
        sa.Column("stakeholder_email", sa.String(255), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("approval_notes", sa.Text()),
        sa.Column("conditions", sa.JSON(), nullable=False),
        sa.UniqueConstraint("request_id", "stakeholder_role", name="uq_approval_request_role"),
    )

    op.create_table(
        "version_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("category", sa.String(20), nullable=False, index=True),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("from_version", sa.String(64)),
        sa.Column("to_version", sa.String(64), nullable=False),
        sa.Column("request_id", sa.String(36),
                  sa.ForeignKey("change_requests.id", ondelete="SET NULL"), index=True),
        sa.Column("change_reason", sa.Text(), server_default=""),
        sa.Column("impact_level", sa.String(20)),
        sa.Column("breaking_changes", sa.JSON(), nullable=False),
        sa.Column("requested_by", sa.String(150), nullable=False, server_default="system"),
        sa.Column("approved_by", sa.JSON(), nullable=False),
        sa.Column("confirmed_by", sa.String(150)),
        sa.Column("confirmation_text", sa.Text()),
        sa.Column("requested_at", sa.DateTime(timezone=True)),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("deployed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("rollback_safe", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("emergency_contact", sa.String(255)),
        sa.Column("safety_checks_passed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("acceptance_checklist_passed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("safety_results", sa.JSON(), nullable=False),
        sa.UniqueConstraint("category", "sequence", name="uq_version_history_sequence"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("category", sa.String(20)),
        sa.Column("entity_type", sa.String(30), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("action", sa.String(60), nullable=False),
        sa.Column("actor", sa.String(150), nullable=False, server_default="system"),
        sa.Column("request_id", sa.String(64)),
        sa.Column("diff_json", sa.Text(), server_default="{}"),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_audit_entity", "audit_logs", ["entity_type", "entity_id"])
    op.create_index("idx_audit_category", "audit_logs", ["category"])
    op.create_index("idx_audit_actor", "audit_logs", ["actor"])
    op.create_index("idx_audit_action", "audit_logs", ["action"])
    op.create_index("idx_audit_ts", "audit_logs", ["timestamp"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("recipient", sa.String(255), index=True, server_default="all"),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("message", sa.Text(), server_default=""),
        sa.Column("category", sa.String(30), server_default="system"),
        sa.Column("severity", sa.String(20), server_default="info"),
        sa.Column("entity_type", sa.String(30), server_default=""),
        sa.Column("entity_id", sa.String(64)),
        sa.Column("is_read", sa.Boolean(), server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table("notifications")
    for index in ("idx_audit_ts", "idx_audit_action", "idx_audit_actor", "idx_audit_category", "idx_audit_entity"):
        op.drop_index(index, table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("version_history")
    op.drop_table("stakeholder_approvals")
    op.drop_index("idx_change_requests_category_status", table_name="change_requests")
    op.drop_table("change_requests")
    op.drop_table("template_defaults")
    op.drop_index("idx_template_versions_category", table_name="template_versions")
    op.drop_table("template_versions")
