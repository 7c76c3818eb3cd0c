#!/usr/bin/env python3
"""
VM types API routes blueprint.
"""

import logging

from flask import Blueprint, jsonify, request

from vmguardian.services import vm_type_service
from vmguardian.utils.decorators import admin_required, current_user, login_required

logger = logging.getLogger(__name__)

api_vm_types_bp = Blueprint('api_vm_types', __name__, url_prefix='/api/vm-types')


@api_vm_types_bp.route("", methods=["GET"])
@login_required
def list_types():
    return jsonify({"ok": True, "vm_types": [t.to_dict() for t in vm_type_service.list_vm_types()]})


@api_vm_types_bp.route("/<int:type_id>", methods=["GET"])
@login_required
def get_type(type_id: int):
    return jsonify({"ok": True, "vm_type": vm_type_service.get_vm_type(type_id).to_dict()})


@api_vm_types_bp.route("", methods=["POST"])
@admin_required
def create_type():
    vm_type = vm_type_service.create_vm_type(request.get_json(silent=True) or {})
    return jsonify({"ok": True, "vm_type": vm_type.to_dict()}), 201


@api_vm_types_bp.route("/<int:type_id>", methods=["PUT"])
@admin_required
def update_type(type_id: int):
    vm_type = vm_type_service.update_vm_type(type_id, request.get_json(silent=True) or {})
    logger.info("Admin %s updated VM type %s", current_user().email, vm_type.name)
    return jsonify({"ok": True, "vm_type": vm_type.to_dict()})


@api_vm_types_bp.route("/<int:type_id>", methods=["DELETE"])
@admin_required
def delete_type(type_id: int):
    vm_type_service.delete_vm_type(type_id)
    return jsonify({"ok": True, "message": "VM type deleted"})
