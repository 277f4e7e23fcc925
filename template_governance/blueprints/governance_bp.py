"""
Template Governance Blueprint: change requests for default templates.

Routes (/api/v1/template-governance):
  POST   /requests                       – open a change request
  GET    /requests                       – list (filters: category, status)
  GET    /requests/active                – non-terminal requests
  GET    /requests/<rid>                 – one request with approvals
  POST   /requests/<rid>/approve         – record a stakeholder approval
  POST   /requests/<rid>/confirm         – confirm with the exact text and deploy
  POST   /requests/<rid>/cancel          – cancel an open request
  POST   /requests/<rid>/recheck         – re-run safety checks at quorum
  GET    /impact                         – impact / approvers / text preview
"""

import logging

from flask import Blueprint, jsonify, request

from template_governance.blueprints import register_error_handlers
from template_governance.services.change_orchestrator import get_orchestrator
from template_governance.utils.errors import E, api_error

logger = logging.getLogger(__name__)

governance_bp = Blueprint("governance", __name__, url_prefix="/api/v1/template-governance")
register_error_handlers(governance_bp)


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


# ═════════════════════════════════════════════════════════════════════════════
# REQUESTS
# ═════════════════════════════════════════════════════════════════════════════

@governance_bp.route("/requests", methods=["POST"])
def create_request():
    """Open a change request.

    Body: {category, new_version, reason, requester, from_version?}
    """
    data = _json_body()
    if data is None:
        return api_error(E.VALIDATION_INVALID, "JSON body required")
    category = (data.get("category") or "").strip()
    if not category:
        return api_error(E.VALIDATION_REQUIRED, "category is required")

    req = get_orchestrator().request_change(
        category,
        data.get("new_version") or data.get("to_version") or "",
        data.get("reason", ""),
        data.get("requester", ""),
        from_version=data.get("from_version"),
    )
    return jsonify(req.to_dict()), 201


@governance_bp.route("/requests", methods=["GET"])
def list_requests():
    items = get_orchestrator().list_requests(
        category=request.args.get("category"),
        status=request.args.get("status"),
    )
    return jsonify({"items": [r.to_dict(include_approvals=False) for r in items], "total": len(items)})


@governance_bp.route("/requests/active", methods=["GET"])
def active_requests():
    items = get_orchestrator().get_active_requests(category=request.args.get("category"))
    return jsonify({"items": [r.to_dict() for r in items], "total": len(items)})


@governance_bp.route("/requests/<rid>", methods=["GET"])
def get_request(rid):
    return jsonify(get_orchestrator().get_request(rid).to_dict())


@governance_bp.route("/requests/<rid>/approve", methods=["POST"])
def approve_request(rid):
    """Body: {role, identity, notes?, conditions?}"""
    data = _json_body()
    if data is None:
        return api_error(E.VALIDATION_INVALID, "JSON body required")
    role = (data.get("role") or "").strip()
    identity = (data.get("identity") or "").strip()
    if not role or not identity:
        return api_error(E.VALIDATION_REQUIRED, "role and identity are required")
    conditions = data.get("conditions") or []
    if not isinstance(conditions, list):
        return api_error(E.VALIDATION_INVALID, "conditions must be a list")

    result = get_orchestrator().approve(rid, role, identity, notes=data.get("notes"), conditions=conditions)
    return jsonify(result.to_dict())


@governance_bp.route("/requests/<rid>/confirm", methods=["POST"])
def confirm_request(rid):
    """Body: {confirmation_text, confirmed_by}"""
    data = _json_body()
    if data is None:
        return api_error(E.VALIDATION_INVALID, "JSON body required")
    text = data.get("confirmation_text")
    if not isinstance(text, str):
        return api_error(E.VALIDATION_REQUIRED, "confirmation_text is required")

    entry = get_orchestrator().confirm(rid, text, data.get("confirmed_by", ""))
    return jsonify(entry.to_dict()), 201


@governance_bp.route("/requests/<rid>/cancel", methods=["POST"])
def cancel_request(rid):
    """Body: {reason, actor}"""
    data = _json_body() or {}
    req = get_orchestrator().cancel(rid, data.get("reason", ""), data.get("actor", ""))
    return jsonify(req.to_dict())


@governance_bp.route("/requests/<rid>/recheck", methods=["POST"])
def recheck_request(rid):
    data = _json_body() or {}
    result = get_orchestrator().recheck_safety(rid, data.get("actor", "system"))
    return jsonify(result.to_dict())


# ═════════════════════════════════════════════════════════════════════════════
# PREVIEW
# ═════════════════════════════════════════════════════════════════════════════

@governance_bp.route("/impact", methods=["GET"])
def preview_impact():
    category = request.args.get("category", "")
    to_version = request.args.get("to_version", "")
    if not category or not to_version:
        return api_error(E.VALIDATION_REQUIRED, "category and to_version are required")
    preview = get_orchestrator().preview_impact(
        category, to_version, requester=request.args.get("requester") or "you",
    )
    return jsonify(preview)
