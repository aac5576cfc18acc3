"""
ProjectHub
Notifications blueprint: the caller's own in-app notifications.

Endpoints:
    GET  /api/v1/notifications                 ?unread_only=true&limit=&offset=
    GET  /api/v1/notifications/unread-count
    POST /api/v1/notifications/<id>/read
    POST /api/v1/notifications/read-all
"""

from flask import Blueprint, jsonify, request

from projecthub.auth import current_principal, require_auth
from projecthub.blueprints import register_domain_error_handlers
from projecthub.services.notification_service import NotificationService
from projecthub.utils.errors import E, api_error

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/v1/notifications")
register_domain_error_handlers(notifications_bp)


@notifications_bp.route("", methods=["GET"])
@require_auth
def list_notifications():
    principal = current_principal()
    unread_only = request.args.get("unread_only", "false").lower() == "true"
    limit = min(100, max(1, request.args.get("limit", 50, type=int)))
    offset = max(0, request.args.get("offset", 0, type=int))
    items, total = NotificationService.list_for_user(
        principal.id, unread_only=unread_only, limit=limit, offset=offset,
    )
    return jsonify({
        "items": [n.to_dict() for n in items],
        "total": total,
        "unread_count": NotificationService.unread_count(principal.id),
    })


@notifications_bp.route("/unread-count", methods=["GET"])
@require_auth
def unread_count():
    return jsonify({"unread_count": NotificationService.unread_count(current_principal().id)})


@notifications_bp.route("/<int:notification_id>/read", methods=["POST"])
@require_auth
def mark_read(notification_id):
    notif = NotificationService.mark_read(notification_id, current_principal().id)
    if notif is None:
        return api_error(E.NOT_FOUND, "Notification not found")
    return jsonify(notif.to_dict())


@notifications_bp.route("/read-all", methods=["POST"])
@require_auth
def mark_all_read():
    return jsonify({"updated": NotificationService.mark_all_read(current_principal().id)})
