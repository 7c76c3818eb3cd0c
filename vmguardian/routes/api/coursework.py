#!/usr/bin/env python3
"""
Coursework API routes blueprint.

Assignments and documents: readable by every signed-in user, editable by
admins and instructors.
"""

import logging

from flask import Blueprint, jsonify, request

from vmguardian.services import coursework_service
from vmguardian.services.access_guard import ROLE_ADMIN, ROLE_INSTRUCTOR
from vmguardian.utils.decorators import login_required, role_required

logger = logging.getLogger(__name__)

api_coursework_bp = Blueprint('api_coursework', __name__, url_prefix='/api')

staff_required = role_required(ROLE_ADMIN, ROLE_INSTRUCTOR)


@api_coursework_bp.route("/assignments", methods=["GET"])
@login_required
def list_assignments():
    items = coursework_service.list_assignments(course=request.args.get("course"))
    return jsonify({"ok": True, "assignments": [a.to_dict() for a in items]})


@api_coursework_bp.route("/assignments/<int:assignment_id>", methods=["GET"])
@login_required
def get_assignment(assignment_id: int):
    return jsonify({"ok": True, "assignment": coursework_service.get_assignment(assignment_id).to_dict()})


@api_coursework_bp.route("/assignments", methods=["POST"])
@staff_required
def create_assignment():
    assignment = coursework_service.create_assignment(request.get_json(silent=True) or {})
    return jsonify({"ok": True, "assignment": assignment.to_dict()}), 201


@api_coursework_bp.route("/assignments/<int:assignment_id>", methods=["PUT"])
@staff_required
def update_assignment(assignment_id: int):
    assignment = coursework_service.update_assignment(assignment_id, request.get_json(silent=True) or {})
    return jsonify({"ok": True, "assignment": assignment.to_dict()})


@api_coursework_bp.route("/assignments/<int:assignment_id>", methods=["DELETE"])
@staff_required
def delete_assignment(assignment_id: int):
    coursework_service.delete_assignment(assignment_id)
    return jsonify({"ok": True})


@api_coursework_bp.route("/documents", methods=["GET"])
@login_required
def list_documents():
    items = coursework_service.list_documents(category=request.args.get("category"))
    return jsonify({"ok": True, "documents": [d.to_dict() for d in items]})


@api_coursework_bp.route("/documents/<int:document_id>", methods=["GET"])
@login_required
def get_document(document_id: int):
    return jsonify({"ok": True, "document": coursework_service.get_document(document_id).to_dict()})


@api_coursework_bp.route("/documents", methods=["POST"])
@staff_required
def create_document():
    document = coursework_service.create_document(request.get_json(silent=True) or {})
    return jsonify({"ok": True, "document": document.to_dict()}), 201


@api_coursework_bp.route("/documents/<int:document_id>", methods=["PUT"])
@staff_required
def update_document(document_id: int):
    document = coursework_service.update_document(document_id, request.get_json(silent=True) or {})
    return jsonify({"ok": True, "document": document.to_dict()})


@api_coursework_bp.route("/documents/<int:document_id>", methods=["DELETE"])
@staff_required
def delete_document(document_id: int):
    coursework_service.delete_document(document_id)
    return jsonify({"ok": True})
