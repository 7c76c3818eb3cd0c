#!/usr/bin/env python3
"""
Portal routes blueprint.

Landing page and the role dashboards. Pages answer with JSON view models.
"""

import logging

from flask import Blueprint, jsonify

from vmguardian.services.access_guard import ROLE_STUDENT, role_home
from vmguardian.utils.decorators import admin_required, current_user, role_required

logger = logging.getLogger(__name__)

portal_bp = Blueprint('portal', __name__)


@portal_bp.route("/")
def root():
    """Public landing page; tells signed-in users where their dashboard is."""
    user = current_user()
    return jsonify({
        "ok": True,
        "page": "landing",
        "user": user.to_dict() if user else None,
        "home": role_home(user.role) if user else None,
    })


@portal_bp.route("/admin")
@admin_required
def admin_dashboard():
    """Admin overview: accounts, VM states and the request queue."""
    from sqlalchemy import func

    from vmguardian.models import db, User
    from vmguardian.services import vm_request_service, vm_service

    user = current_user()
    vms = vm_service.list_vms(user)
    pending = vm_request_service.list_requests(status='pending')

    by_role = dict(db.session.query(User.role, func.count(User.id)).group_by(User.role).all())
    by_status = dict(db.session.query(User.status, func.count(User.id)).group_by(User.status).all())

    return jsonify({
        "ok": True,
        "page": "admin",
        "users": {"total": sum(by_role.values()), "by_role": by_role, "by_status": by_status},
        "vms": {"total": len(vms), "by_state": vm_service.state_counts(vms)},
        "pending_requests": [r.to_dict() for r in pending],
    })


@portal_bp.route("/student")
@role_required(ROLE_STUDENT)
def student_dashboard():
    """Student overview: own VMs, requests, usage and unread notifications."""
    from vmguardian.services import notification_service, resource_service, vm_request_service, vm_service

    user = current_user()
    vms = vm_service.list_vms(user)
    return jsonify({
        "ok": True,
        "page": "student",
        "vms": [vm.to_dict() for vm in vms],
        "vm_states": vm_service.state_counts(vms),
        "requests": [r.to_dict() for r in vm_request_service.list_for_user(user)],
        "usage": resource_service.summary(user.id),
        "unread_notifications": notification_service.unread_count(user),
    })


@portal_bp.route("/health")
def health():
    """Health check endpoint."""
    return jsonify({"ok": True})
