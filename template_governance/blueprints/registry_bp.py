"""
Template Registry Blueprint: version catalog, current defaults, ledger.

Routes (/api/v1/template-governance):
  POST   /versions                          – register a template version
  GET    /versions                          – list (filter: category)
  GET    /versions/<version_id>             – one version
  GET    /defaults                          – current default per category
  GET    /defaults/<category>               – current default for a category
  GET    /defaults/<category>/history       – version-history ledger

Defaults are read-only here; only a confirmed change request moves them.
"""

import logging

from flask import Blueprint, jsonify, request

from template_governance.blueprints import register_error_handlers
from template_governance.core.exceptions import NotFoundError
from template_governance.models import db
from template_governance.services.audit_logger import get_audit_logger
from template_governance.services.version_registry import VersionRegistry, validate_category
from template_governance.utils.errors import E, api_error

logger = logging.getLogger(__name__)

registry_bp = Blueprint("registry", __name__, url_prefix="/api/v1/template-governance")
register_error_handlers(registry_bp)

_VERSION_FIELDS = (
    "title", "description", "change_summary", "template_hash", "validation_status",
    "acceptance_checklist", "breaking_changes", "data_migration_required",
    "user_training_required", "user_impact", "rollback_safe", "bundle_size_kb",
    "render_time_ms", "accessibility_score", "print_fidelity_score",
)


# ═════════════════════════════════════════════════════════════════════════════
# VERSIONS
# ═════════════════════════════════════════════════════════════════════════════

@registry_bp.route("/versions", methods=["POST"])
def register_version():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_INVALID, "JSON body required")
    category = (data.get("category") or "").strip()
    version_number = (data.get("version_number") or "").strip()
    if not category or not version_number:
        return api_error(E.VALIDATION_REQUIRED, "category and version_number are required")
    if not isinstance(data.get("breaking_changes", []), list):
        return api_error(E.VALIDATION_INVALID, "breaking_changes must be a list")
    if not isinstance(data.get("acceptance_checklist", {}), dict):
        return api_error(E.VALIDATION_INVALID, "acceptance_checklist must be an object")

    created_by = (data.get("created_by") or "system").strip()
    metadata = {k: data[k] for k in _VERSION_FIELDS if k in data}
    version = VersionRegistry().register_version(category, version_number, created_by=created_by, **metadata)
    get_audit_logger().log(
        "template_version.registered",
        entity_type="template_version", entity_id=version.version_id,
        actor=created_by, category=category,
        diff={"version_number": version.version_number, "breaking_changes": version.breaking_changes},
    )
    db.session.commit()
    return jsonify(version.to_dict()), 201


@registry_bp.route("/versions", methods=["GET"])
def list_versions():
    category = request.args.get("category")
    items = VersionRegistry().list_versions(category)
    return jsonify({"items": [v.to_dict() for v in items], "total": len(items)})


@registry_bp.route("/versions/<version_id>", methods=["GET"])
def get_version(version_id):
    return jsonify(VersionRegistry().get_version(version_id).to_dict())


# ═════════════════════════════════════════════════════════════════════════════
# DEFAULTS & LEDGER
# ═════════════════════════════════════════════════════════════════════════════

@registry_bp.route("/defaults", methods=["GET"])
def list_defaults():
    return jsonify({"items": [d.to_dict() for d in VersionRegistry().list_defaults()]})


@registry_bp.route("/defaults/<category>", methods=["GET"])
def current_default(category):
    validate_category(category)
    version_id = VersionRegistry().get_current_default(category)
    if version_id is None:
        raise NotFoundError(resource="TemplateDefault", resource_id=category)
    return jsonify({"category": category, "version_id": version_id})


@registry_bp.route("/defaults/<category>/history", methods=["GET"])
def default_history(category):
    validate_category(category)
    entries = VersionRegistry().get_history(category)
    return jsonify({"category": category, "items": [e.to_dict() for e in entries], "total": len(entries)})
