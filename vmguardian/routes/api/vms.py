#!/usr/bin/env python3
"""
VMs API routes blueprint.

Listing, admin provisioning, lifecycle actions, connection details and
status history for virtual machines.
"""

import logging

from flask import Blueprint, Response, jsonify, request

from vmguardian.services import vm_service
from vmguardian.services.rdp_service import build_rdp, connection_info, rdp_filename
from vmguardian.utils.decorators import admin_required, current_user, login_required

logger = logging.getLogger(__name__)

api_vms_bp = Blueprint('api_vms', __name__, url_prefix='/api/vms')


def _truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or '').lower() in ('1', 'true', 'yes', 'on')


@api_vms_bp.route("", methods=["GET"])
@login_required
def list_vms():
    """VMs visible to the caller. Admins may filter by ?state=&owner=&course=."""
    user = current_user()
    vms = vm_service.list_vms(
        user,
        state=request.args.get("state"),
        owner_id=request.args.get("owner", type=int),
        course=request.args.get("course"),
    )
    return jsonify({
        "ok": True,
        "vms": [vm.to_dict(is_admin=user.is_admin) for vm in vms],
        "counts": vm_service.state_counts(vms),
    })


@api_vms_bp.route("", methods=["POST"])
@admin_required
def create_vm():
    user = current_user()
    vm = vm_service.create_vm(user, request.get_json(silent=True) or {})
    return jsonify({"ok": True, "vm": vm.to_dict(is_admin=True)}), 201


@api_vms_bp.route("/<int:vm_id>", methods=["GET"])
@login_required
def get_vm(vm_id: int):
    user = current_user()
    vm = vm_service.get_vm(user, vm_id)
    return jsonify({"ok": True, "vm": vm.to_dict(is_admin=user.is_admin)})


@api_vms_bp.route("/<int:vm_id>", methods=["PUT"])
@admin_required
def update_vm(vm_id: int):
    vm = vm_service.update_vm(current_user(), vm_id, request.get_json(silent=True) or {})
    return jsonify({"ok": True, "vm": vm.to_dict(is_admin=True)})


@api_vms_bp.route("/<int:vm_id>", methods=["DELETE"])
@admin_required
def delete_vm(vm_id: int):
    data = request.get_json(silent=True) or {}
    remove_storage = _truthy(data.get("remove_storage", request.args.get("remove_storage")))
    vm_service.delete_vm(current_user(), vm_id, remove_storage=remove_storage)
    return jsonify({"ok": True, "message": "VM deleted"})


@api_vms_bp.route("/<int:vm_id>/<action>", methods=["POST"])
@login_required
def vm_action(vm_id: int, action: str):
    """start / stop / shutdown / restart / suspend"""
    user = current_user()
    vm, message = vm_service.perform_action(user, vm_id, action)
    return jsonify({"ok": True, "message": message, "vm": vm.to_dict(is_admin=user.is_admin)})


@api_vms_bp.route("/<int:vm_id>/refresh", methods=["POST"])
@login_required
def refresh_vm(vm_id: int):
    user = current_user()
    vm = vm_service.refresh_vm(user, vm_id)
    return jsonify({"ok": True, "vm": vm.to_dict(is_admin=user.is_admin)})


@api_vms_bp.route("/<int:vm_id>/connect", methods=["GET"])
@login_required
def connect(vm_id: int):
    """Connection details; Windows VMs can download an .rdp file (?download=1)."""
    vm = vm_service.connectable_vm(current_user(), vm_id)
    info = connection_info(vm)

    if info["protocol"] == "rdp" and _truthy(request.args.get("download")):
        logger.info("rdp_file: %s downloaded for %s", vm.name, current_user().email)
        return Response(
            build_rdp(vm),
            mimetype="application/x-rdp",
            headers={"Content-Disposition": f'attachment; filename="{rdp_filename(vm)}"'},
        )
    return jsonify({"ok": True, "connection": info})


@api_vms_bp.route("/<int:vm_id>/history", methods=["GET"])
@login_required
def vm_history(vm_id: int):
    entries = vm_service.history(current_user(), vm_id)
    return jsonify({"ok": True, "history": [h.to_dict() for h in entries]})
