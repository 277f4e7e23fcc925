"""
Audit blueprint: read access to the governance audit trail.

Endpoints:
    GET  /api/v1/audit               list / filter audit logs
    GET  /api/v1/audit/<int:log_id>  single audit entry
"""

from flask import Blueprint, jsonify, request

from template_governance.models import db
from template_governance.models.audit import AuditLog

audit_bp = Blueprint("audit", __name__, url_prefix="/api/v1")


@audit_bp.route("/audit", methods=["GET"])
def list_audit_logs():
    """
    Return paginated audit logs with optional filters.

    Query params:
        category     invoice | estimate | receipt
        entity_type  change_request | template_default | template_version
        entity_id    e.g. a change request id
        action       prefix match (``change_request.`` matches all request events)
        actor        exact actor
        page         page number (default 1)
        per_page     items per page (default 50, max 200)
    """
    q = AuditLog.query

    for param, column in (("category", AuditLog.category),
                          ("entity_type", AuditLog.entity_type),
                          ("entity_id", AuditLog.entity_id),
                          ("actor", AuditLog.actor)):
        value = request.args.get(param)
        if value:
            q = q.filter(column == value)

    action = request.args.get("action")
    if action:
        q = q.filter(AuditLog.action.startswith(action))

    q = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())

    page = max(1, request.args.get("page", 1, type=int))
    per_page = min(200, max(1, request.args.get("per_page", 50, type=int)))
    paginated = q.paginate(page=page, per_page=per_page, error_out=False)

    return jsonify({
        "audit_logs": [log.to_dict() for log in paginated.items],
        "total": paginated.total,
        "page": paginated.page,
        "per_page": paginated.per_page,
        "pages": paginated.pages,
    })


@audit_bp.route("/audit/<int:log_id>", methods=["GET"])
def get_audit_log(log_id):
    log = db.session.get(AuditLog, log_id)
    if not log:
        return jsonify({"error": "Audit log not found"}), 404
    return jsonify(log.to_dict())
