#!/usr/bin/env python3
"""
VM requests API routes blueprint.

Students and instructors submit requests; admins approve or reject them.
"""

import logging

from flask import Blueprint, jsonify, request

from vmguardian.services import vm_request_service
from vmguardian.services.access_guard import ROLE_INSTRUCTOR, ROLE_STUDENT
from vmguardian.utils.decorators import admin_required, current_user, login_required, role_required
from vmguardian.utils.validation import optional_text

logger = logging.getLogger(__name__)

api_vm_requests_bp = Blueprint('api_vm_requests', __name__, url_prefix='/api/vm-requests')


@api_vm_requests_bp.route("", methods=["POST"])
@role_required(ROLE_STUDENT, ROLE_INSTRUCTOR)
def create_request():
    vm_request = vm_request_service.create_request(current_user(), request.get_json(silent=True) or {})
    return jsonify({"ok": True, "request": vm_request.to_dict()}), 201


@api_vm_requests_bp.route("/mine", methods=["GET"])
@login_required
def my_requests():
    requests_ = vm_request_service.list_for_user(current_user())
    return jsonify({"ok": True, "requests": [r.to_dict() for r in requests_]})


@api_vm_requests_bp.route("", methods=["GET"])
@admin_required
def list_requests():
    """All requests; ?status=pending|approved|rejected filters."""
    requests_ = vm_request_service.list_requests(status=request.args.get("status"))
    return jsonify({"ok": True, "requests": [r.to_dict() for r in requests_]})


@api_vm_requests_bp.route("/<int:request_id>/approve", methods=["POST"])
@admin_required
def approve(request_id: int):
    data = request.get_json(silent=True) or {}
    vm_request = vm_request_service.approve_request(current_user(), request_id, data)
    return jsonify({
        "ok": True,
        "request": vm_request.to_dict(),
        "vm": vm_request.vm.to_dict(is_admin=True) if vm_request.vm else None,
    })


@api_vm_requests_bp.route("/<int:request_id>/reject", methods=["POST"])
@admin_required
def reject(request_id: int):
    data = request.get_json(silent=True) or {}
    reason = optional_text(data, "response_message") or optional_text(data, "reason")
    vm_request = vm_request_service.reject_request(current_user(), request_id, reason)
    return jsonify({"ok": True, "request": vm_request.to_dict()})


@api_vm_requests_bp.route("/<int:request_id>/message", methods=["PUT"])
@admin_required
def update_message(request_id: int):
    data = request.get_json(silent=True) or {}
    vm_request = vm_request_service.update_response_message(
        current_user(), request_id, optional_text(data, "response_message"))
    return jsonify({"ok": True, "request": vm_request.to_dict()})
