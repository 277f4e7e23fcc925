"""
Notification Blueprint: in-app governance notifications.

Endpoints:
    GET   /api/v1/notifications?recipient=&unread_only=   list, newest first
    GET   /api/v1/notifications/unread-count?recipient=
    PATCH /api/v1/notifications/<int:nid>/read            mark one read
    POST  /api/v1/notifications/mark-all-read             {recipient}
"""

from flask import Blueprint, jsonify, request

from template_governance.services.notification import NotificationService

notification_bp = Blueprint("notification", __name__, url_prefix="/api/v1")


@notification_bp.route("/notifications", methods=["GET"])
def list_notifications():
    recipient = request.args.get("recipient", "all")
    unread_only = request.args.get("unread_only", "false").lower() == "true"
    limit = min(max(request.args.get("limit", 50, type=int), 1), 200)
    offset = max(request.args.get("offset", 0, type=int), 0)
    items, total = NotificationService.list_for_recipient(
        recipient, unread_only=unread_only, limit=limit, offset=offset,
    )
    return jsonify({
        "items": [n.to_dict() for n in items],
        "total": total,
        "unread_count": NotificationService.unread_count(recipient),
    })


@notification_bp.route("/notifications/unread-count", methods=["GET"])
def unread_count():
    recipient = request.args.get("recipient", "all")
    return jsonify({"recipient": recipient, "unread_count": NotificationService.unread_count(recipient)})


@notification_bp.route("/notifications/<int:nid>/read", methods=["PATCH"])
def mark_read(nid):
    notif = NotificationService.mark_read(nid)
    if not notif:
        return jsonify({"error": "Notification not found"}), 404
    return jsonify(notif.to_dict())


@notification_bp.route("/notifications/mark-all-read", methods=["POST"])
def mark_all_read():
    data = request.get_json(silent=True) or {}
    count = NotificationService.mark_all_read(data.get("recipient", "all"))
    return jsonify({"marked_read": count})
