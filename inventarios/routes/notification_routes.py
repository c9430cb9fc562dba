from __future__ import annotations

from flask import Blueprint, jsonify, request

from inventarios.application.notification_service import NotificationService
from inventarios.domain.forms import notification_input
from inventarios.routes.common import due_soon_days, json_body, today
from inventarios.row_store import get_row_store


notifications_bp = Blueprint("notifications", __name__)

_NOTIFICATION_SERVICE = NotificationService()


@notifications_bp.route("/api/notifications", methods=["GET", "POST"])
def notifications_api():
    store = get_row_store()
    if request.method == "POST":
        row = _NOTIFICATION_SERVICE.create_notification(store, notification_input(json_body()))
        return jsonify(row), 201
    items = _NOTIFICATION_SERVICE.list_notifications(
        store,
        status=request.args.get("status"),
        notification_type=request.args.get("type"),
        priority=request.args.get("priority"),
    )
    return jsonify({"items": items})


@notifications_bp.route("/api/notifications/unread-count", methods=["GET"])
def notifications_unread_count_api():
    return jsonify({"unread": _NOTIFICATION_SERVICE.unread_count(get_row_store())})


@notifications_bp.route("/api/notifications/scan-payments", methods=["POST"])
def notifications_scan_payments_api():
    created = _NOTIFICATION_SERVICE.scan_payment_due(
        get_row_store(),
        today=today(),
        due_soon_days=due_soon_days(),
    )
    return jsonify({"created": len(created), "items": created})


@notifications_bp.route("/api/notifications/<int:notification_id>/read", methods=["POST"])
def notification_read_api(notification_id: int):
    return jsonify(_NOTIFICATION_SERVICE.mark_read(get_row_store(), notification_id))


@notifications_bp.route("/api/notifications/<int:notification_id>/unread", methods=["POST"])
def notification_unread_api(notification_id: int):
    return jsonify(_NOTIFICATION_SERVICE.mark_unread(get_row_store(), notification_id))


@notifications_bp.route("/api/notifications/<int:notification_id>/archive", methods=["POST"])
def notification_archive_api(notification_id: int):
    return jsonify(_NOTIFICATION_SERVICE.archive(get_row_store(), notification_id))


@notifications_bp.route("/api/notifications/<int:notification_id>", methods=["DELETE"])
def notification_delete_api(notification_id: int):
    _NOTIFICATION_SERVICE.delete_notification(get_row_store(), notification_id)
    return jsonify({"deleted": True, "id": notification_id})
