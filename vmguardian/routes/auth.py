#!/usr/bin/env python3
"""
Authentication routes blueprint.

Handles login, logout, and self-registration. Both JSON and form posts are
accepted; JSON callers get JSON back, form posts get redirects.
"""

import logging

from flask import Blueprint, jsonify, redirect, request, url_for

from vmguardian.services.access_guard import ROLE_ADMIN, ROLE_INSTRUCTOR, ROLE_STUDENT, role_home
from vmguardian.utils.auth_helpers import login_session, logout_session, safe_next_path
from vmguardian.utils.decorators import current_user, login_required
from vmguardian.utils.validation import text_field

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

# Roles a visitor may pick when registering; admin accounts are created by admins
SELF_SERVICE_ROLES = (ROLE_STUDENT, ROLE_INSTRUCTOR)


def _payload():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else request.form


def _wants_json() -> bool:
    return request.is_json or request.accept_mimetypes.best == 'application/json'


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    """Handle user login."""
    from vmguardian.services.user_service import authenticate_user

    user = current_user()
    if request.method == "GET":
        if user:
            # Already logged in; go home
            return redirect(role_home(user.role))
        return jsonify({
            "ok": True,
            "page": "login",
            "next": safe_next_path(request.args.get("next")),
        })

    data = _payload()
    email = text_field(data, "email")
    password = text_field(data, "password", strip=False)
    if not email or not password:
        return jsonify({"ok": False, "error": "Email and password are required"}), 400

    user = authenticate_user(email, password)
    if not user:
        logger.info("Failed login for %s", email)
        return jsonify({"ok": False, "error": "Invalid email or password"}), 401

    login_session(user)
    logger.info("user logged in: %s (%s)", user.email, user.role)

    destination = safe_next_path(request.args.get("next") or text_field(data, "next")) or role_home(user.role)
    if _wants_json():
        return jsonify({"ok": True, "user": user.to_dict(), "redirect": destination})
    return redirect(destination)


@auth_bp.route("/register", methods=["GET", "POST"])
def register():
    """Self-registration. New accounts start out pending."""
    from vmguardian.exceptions import ValidationError
    from vmguardian.services.user_service import create_user

    if request.method == "GET":
        user = current_user()
        if user:
            return redirect(role_home(user.role))
        return jsonify({"ok": True, "page": "register", "roles": list(SELF_SERVICE_ROLES)})

    data = _payload()
    role = text_field(data, "role", ROLE_STUDENT)
    if role == ROLE_ADMIN or role not in SELF_SERVICE_ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(SELF_SERVICE_ROLES)}")

    password = text_field(data, "password", strip=False)
    confirm = text_field(data, "password_confirm", strip=False) if "password_confirm" in data else None
    if confirm is not None and confirm != password:
        raise ValidationError("Passwords do not match")

    user = create_user(
        email=text_field(data, "email"),
        name=text_field(data, "name"),
        password=password,
        role=role,
        department=text_field(data, "department", None),
    )
    logger.info("New user registered: %s (%s)", user.email, role)

    if _wants_json():
        return jsonify({"ok": True, "user": user.to_dict(), "message": "Account created. You can now sign in."}), 201
    return redirect(url_for("auth.login"))


@auth_bp.route("/logout")
def logout():
    user = current_user()
    logout_session()
    if user:
        logger.info("user logged out: %s", user.email)
    return redirect(url_for("auth.login"))


@auth_bp.route("/api/auth/me")
@login_required
def me():
    """Current user plus where the dashboard lives for their role."""
    user = current_user()
    return jsonify({"ok": True, "user": user.to_dict(), "home": role_home(user.role)})
