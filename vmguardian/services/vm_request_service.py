#!/usr/bin/env python3
"""
VM request workflow.

A request is created pending and decided exactly once. Approval provisions a
VirtualMachine record in the 'creating' state owned by the requester;
rejection only records the reason. Either decision notifies the requester.
"""

import logging
from typing import Any, Dict, List, Optional

from vmguardian import config
from vmguardian.exceptions import ConflictError, NotFoundError, ValidationError
from vmguardian.models import db, REQUEST_STATUSES, User, VirtualMachine, VMRequest, VMStatusHistory, VMType
from vmguardian.services.notification_service import notify
from vmguardian.utils.validation import optional_text, text_field

logger = logging.getLogger(__name__)

DEFAULT_APPROVE_MESSAGE = "Your VM request has been approved."
DEFAULT_REJECT_MESSAGE = "Your VM request has been rejected."


def parse_bounded_int(data: Dict[str, Any], key: str, default: int, minimum: int, maximum: int, label: str) -> int:
    value = data.get(key)
    if value is None or value == '':
        return default
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a whole number")
    if value < minimum or value > maximum:
        raise ValidationError(f"{label} must be between {minimum} and {maximum}")
    return value


def _vm_type_or_none(type_id) -> Optional[VMType]:
    if type_id in (None, ''):
        return None
    try:
        type_id = int(type_id)
    except (TypeError, ValueError):
        raise ValidationError("vm_type_id must be a number")
    vm_type = db.session.get(VMType, type_id)
    if not vm_type:
        raise ValidationError("Selected VM type does not exist")
    return vm_type


def get_request(request_id: int) -> VMRequest:
    vm_request = db.session.get(VMRequest, request_id)
    if not vm_request:
        raise NotFoundError("VM request not found")
    return vm_request


def create_request(user: User, data: Dict[str, Any]) -> VMRequest:
    """Validate and store a new pending request for `user`."""
    purpose = text_field(data, 'purpose')
    if not purpose:
        raise ValidationError("Purpose is required")

    vcpus = parse_bounded_int(data, 'vcpus', config.DEFAULT_VCPUS, config.MIN_VCPUS, config.MAX_VCPUS, "vCPUs")
    memory = parse_bounded_int(data, 'memory', config.DEFAULT_MEMORY_MB,
                                config.MIN_MEMORY_MB, config.MAX_MEMORY_MB, "Memory (MB)")
    storage = parse_bounded_int(data, 'storage', config.DEFAULT_STORAGE_GB,
                                config.MIN_STORAGE_GB, config.MAX_STORAGE_GB, "Storage (GB)")

    duration = text_field(data, 'duration', config.DEFAULT_DURATION)
    if duration not in config.DURATIONS:
        raise ValidationError(f"Invalid duration. Must be one of: {', '.join(config.DURATIONS)}")

    vm_type = _vm_type_or_none(data.get('vm_type_id'))
    os_type = text_field(data, 'os_type', vm_type.os_type if vm_type else 'linux').lower()
    if os_type not in config.OS_TYPES:
        raise ValidationError(f"Invalid OS type. Must be one of: {', '.join(config.OS_TYPES)}")

    vm_request = VMRequest(
        user_id=user.id,
        purpose=purpose,
        description=optional_text(data, 'description'),
        vcpus=vcpus,
        memory=memory,
        storage=storage,
        duration=duration,
        os_type=os_type,
        course=optional_text(data, 'course'),
        vm_type_id=vm_type.id if vm_type else None,
        status='pending',
    )
    try:
        db.session.add(vm_request)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to store VM request for %s", user.email)
        raise

    logger.info("VM request %s submitted by %s (%s vCPU, %s MB, %s GB)",
                vm_request.id, user.email, vcpus, memory, storage)
    return vm_request


def list_for_user(user: User) -> List[VMRequest]:
    return (VMRequest.query.filter_by(user_id=user.id)
            .order_by(VMRequest.created_at.desc(), VMRequest.id.desc()).all())


def list_requests(status: str = None) -> List[VMRequest]:
    """All requests, newest first, optionally filtered by status."""
    query = VMRequest.query
    if status:
        if status not in REQUEST_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(REQUEST_STATUSES)}")
        query = query.filter_by(status=status)
    return query.order_by(VMRequest.created_at.desc(), VMRequest.id.desc()).all()


def _unique_vm_name(base: str) -> str:
    name = base
    suffix = 1
    while VirtualMachine.query.filter_by(name=name).first():
        suffix += 1
        name = f"{base}-{suffix}"
    return name


def approve_request(actor: User, request_id: int, data: Dict[str, Any] = None) -> VMRequest:
    """Approve a pending request and provision its VM record.

    `data` may carry `name` for the new VM and a `response_message`.
    """
    data = data or {}
    vm_request = get_request(request_id)
    if not vm_request.is_pending:
        raise ConflictError(f"Request has already been {vm_request.status}")

    requested_name = text_field(data, 'name')
    if requested_name:
        if VirtualMachine.query.filter_by(name=requested_name).first():
            raise ConflictError(f"A VM named '{requested_name}' already exists")
        vm_name = requested_name
    else:
        vm_name = _unique_vm_name(f"vm-{vm_request.id}")

    message = text_field(data, 'response_message', DEFAULT_APPROVE_MESSAGE)

    vm = VirtualMachine(
        name=vm_name,
        user_id=vm_request.user_id,
        status='creating',
        os=vm_request.os_type or 'linux',
        cpu=vm_request.vcpus,
        memory=vm_request.memory,
        storage=vm_request.storage,
        course=vm_request.course,
        description=vm_request.purpose,
        vm_type_id=vm_request.vm_type_id,
    )
    try:
        db.session.add(vm)
        db.session.flush()
        db.session.add(VMStatusHistory(vm_id=vm.id, previous_status=None, new_status='creating',
                                       action='create', changed_by_id=actor.id))
        vm_request.status = 'approved'
        vm_request.vm_id = vm.id
        vm_request.response_message = message
        notify(vm_request.user_id, f"{message} VM '{vm_name}' is being created.", 'success')
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to approve VM request %s", request_id)
        raise

    logger.info("Admin %s approved VM request %s -> VM %s", actor.email, vm_request.id, vm_name)
    return vm_request


def reject_request(actor: User, request_id: int, reason: str = None) -> VMRequest:
    vm_request = get_request(request_id)
    if not vm_request.is_pending:
        raise ConflictError(f"Request has already been {vm_request.status}")

    message = (reason or '').strip() or DEFAULT_REJECT_MESSAGE
    try:
        vm_request.status = 'rejected'
        vm_request.response_message = message
        notify(vm_request.user_id, message, 'warning')
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to reject VM request %s", request_id)
        raise

    logger.info("Admin %s rejected VM request %s", actor.email, vm_request.id)
    return vm_request


def update_response_message(actor: User, request_id: int, message: str) -> VMRequest:
    """Edit the response on an already decided request."""
    vm_request = get_request(request_id)
    if vm_request.is_pending:
        raise ConflictError("Request has not been decided yet; approve or reject it instead")

    vm_request.response_message = (message or '').strip() or None
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to update response message on request %s", request_id)
        raise
    logger.info("Admin %s updated response message on request %s", actor.email, vm_request.id)
    return vm_request
