#!/usr/bin/env python3
"""
Notifications API routes blueprint.
"""

import logging

from flask import Blueprint, jsonify, request

from vmguardian.exceptions import ValidationError
from vmguardian.services import notification_service
from vmguardian.utils.decorators import admin_required, current_user, login_required
from vmguardian.utils.validation import text_field

logger = logging.getLogger(__name__)

api_notifications_bp = Blueprint('api_notifications', __name__, url_prefix='/api/notifications')


@api_notifications_bp.route("", methods=["GET"])
@login_required
def list_notifications():
    """Own notifications, newest first; ?unread=1 for unread only."""
    user = current_user()
    unread_only = request.args.get("unread", "").lower() in ("1", "true", "yes")
    items = notification_service.list_for_user(user, unread_only=unread_only)
    return jsonify({
        "ok": True,
        "notifications": [n.to_dict() for n in items],
        "unread": notification_service.unread_count(user),
    })


@api_notifications_bp.route("/<int:notification_id>/read", methods=["POST"])
@login_required
def mark_read(notification_id: int):
    notification = notification_service.mark_read(current_user(), notification_id)
    return jsonify({"ok": True, "notification": notification.to_dict()})


@api_notifications_bp.route("/read-all", methods=["POST"])
@login_required
def mark_all_read():
    count = notification_service.mark_all_read(current_user())
    return jsonify({"ok": True, "updated": count})


@api_notifications_bp.route("", methods=["POST"])
@admin_required
def send_notification():
    data = request.get_json(silent=True) or {}
    try:
        user_id = int(data.get("user_id"))
    except (TypeError, ValueError):
        raise ValidationError("user_id is required")
    notification = notification_service.send(user_id, text_field(data, "message"), text_field(data, "type", "info"))
    return jsonify({"ok": True, "notification": notification.to_dict()}), 201
