#!/usr/bin/env python3
"""
Resource usage API routes blueprint.
"""

import logging

from flask import Blueprint, jsonify, request

from vmguardian.exceptions import NotFoundError
from vmguardian.services import resource_service
from vmguardian.utils.decorators import current_user, login_required

logger = logging.getLogger(__name__)

api_resources_bp = Blueprint('api_resources', __name__, url_prefix='/api/resources')


def _target_user_id() -> int:
    """Own id, or ?user_id= for admins."""
    from vmguardian.models import db, User

    user = current_user()
    requested = request.args.get("user_id", type=int)
    if requested is None or requested == user.id or not user.is_admin:
        return user.id
    if not db.session.get(User, requested):
        raise NotFoundError("User not found")
    return requested


@api_resources_bp.route("", methods=["POST"])
@login_required
def record_usage():
    sample = resource_service.record_usage(current_user().id, request.get_json(silent=True) or {})
    return jsonify({"ok": True, "sample": sample.to_dict()}), 201


@api_resources_bp.route("", methods=["GET"])
@login_required
def usage_timeline():
    hours = resource_service.window_hours(request.args.get("hours"))
    samples = resource_service.timeline(_target_user_id(), hours)
    return jsonify({"ok": True, "hours": hours, "samples": [s.to_dict() for s in samples]})


@api_resources_bp.route("/summary", methods=["GET"])
@login_required
def usage_summary():
    hours = resource_service.window_hours(request.args.get("hours"))
    return jsonify({"ok": True, "summary": resource_service.summary(_target_user_id(), hours)})
