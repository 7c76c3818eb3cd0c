#!/usr/bin/env python3
"""
Users API routes blueprint.

Handles user listing, administrative management and self-service profile
endpoints.
"""

import logging

from flask import Blueprint, jsonify, request

from vmguardian.services import user_service
from vmguardian.services.access_guard import ROLE_ADMIN, ROLE_INSTRUCTOR
from vmguardian.utils.decorators import admin_required, current_user, login_required, role_required
from vmguardian.utils.validation import text_field

logger = logging.getLogger(__name__)

api_users_bp = Blueprint('api_users', __name__, url_prefix='/api/users')


@api_users_bp.route("", methods=["GET"])
@role_required(ROLE_ADMIN, ROLE_INSTRUCTOR)
def list_users():
    """List users, optionally filtered by ?role= and ?status=."""
    users = user_service.list_users(role=request.args.get("role"), status=request.args.get("status"))
    return jsonify({"ok": True, "users": [u.to_dict() for u in users]})


@api_users_bp.route("", methods=["POST"])
@admin_required
def create_user():
    """Admin account creation; accounts start active unless told otherwise."""
    data = request.get_json(silent=True) or {}
    user = user_service.create_user(
        email=text_field(data, "email"),
        name=text_field(data, "name"),
        password=text_field(data, "password", strip=False),
        role=text_field(data, "role", "student"),
        department=text_field(data, "department", None),
        status=text_field(data, "status", "active"),
    )
    logger.info("Admin %s created user %s", current_user().email, user.email)
    return jsonify({"ok": True, "user": user.to_dict()}), 201


@api_users_bp.route("/<int:user_id>", methods=["PATCH"])
@admin_required
def update_user(user_id: int):
    data = request.get_json(silent=True) or {}
    user = user_service.admin_update_user(
        current_user(),
        user_id,
        role=text_field(data, "role", None),
        status=text_field(data, "status", None),
        department=text_field(data, "department") if "department" in data else None,
    )
    return jsonify({"ok": True, "user": user.to_dict()})


@api_users_bp.route("/profile", methods=["PUT"])
@login_required
def update_profile():
    data = request.get_json(silent=True) or {}
    user = user_service.update_profile(
        current_user(),
        name=text_field(data, "name") if "name" in data else None,
        department=text_field(data, "department") if "department" in data else None,
    )
    return jsonify({"ok": True, "user": user.to_dict()})


@api_users_bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    data = request.get_json(silent=True) or {}
    user_service.change_password(
        current_user(),
        text_field(data, "current_password", strip=False),
        text_field(data, "new_password", strip=False),
    )
    return jsonify({"ok": True, "message": "Password updated successfully"})
