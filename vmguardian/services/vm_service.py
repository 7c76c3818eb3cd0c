#!/usr/bin/env python3
"""
VM service - listing, provisioning and lifecycle actions.

Every lifecycle decision is made from the canonical state (map_state), never
from the raw status string. The backend executes the action; the stored
status only changes after the backend reports success.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from vmguardian import config
from vmguardian.exceptions import (
    ConflictError, HypervisorError, NotFoundError, PermissionDeniedError, ValidationError,
)
from vmguardian.models import db, User, VirtualMachine, VMRequest, VMStatusHistory, VMType
from vmguardian.services.hypervisor import get_backend
from vmguardian.services.vm_request_service import parse_bounded_int
from vmguardian.services.vm_state import (
    ACTION_CONNECT, EXPECTED_STATUS, TRANSITION_ACTIONS, VMState, available_actions, map_state,
)
from vmguardian.utils.validation import optional_text, text_field

logger = logging.getLogger(__name__)


def _record_history(vm: VirtualMachine, previous: Optional[str], action: str, actor: Optional[User]) -> None:
    db.session.add(VMStatusHistory(
        vm_id=vm.id,
        previous_status=previous,
        new_status=vm.status,
        action=action,
        changed_by_id=actor.id if actor else None,
    ))


def _commit(what: str) -> None:
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to %s", what)
        raise


def can_access(user: User, vm: VirtualMachine) -> bool:
    """Admins see every VM; everyone else only their own."""
    return user.is_admin or vm.user_id == user.id


def get_vm(user: User, vm_id: int) -> VirtualMachine:
    vm = db.session.get(VirtualMachine, vm_id)
    if not vm:
        raise NotFoundError("VM not found")
    if not can_access(user, vm):
        logger.info("User %s denied access to VM %s", user.email, vm.name)
        raise PermissionDeniedError("You do not have access to this VM")
    return vm


def list_vms(user: User, state: str = None, owner_id: int = None, course: str = None) -> List[VirtualMachine]:
    """VMs visible to `user`, optionally filtered.

    `state` filters on the canonical state; owner_id is honoured for admins
    only (non-admins always get their own VMs).
    """
    query = VirtualMachine.query
    if not user.is_admin:
        query = query.filter_by(user_id=user.id)
    elif owner_id:
        query = query.filter_by(user_id=owner_id)
    if course:
        query = query.filter_by(course=course)

    vms = query.order_by(VirtualMachine.name).all()

    if state:
        try:
            wanted = VMState(state.lower())
        except ValueError:
            raise ValidationError(f"Invalid state. Must be one of: {', '.join(s.value for s in VMState)}")
        vms = [vm for vm in vms if vm.state is wanted]
    return vms


def state_counts(vms: List[VirtualMachine]) -> Dict[str, int]:
    """Number of VMs per canonical state (every state present)."""
    counts = {s.value: 0 for s in VMState}
    for vm in vms:
        counts[vm.state.value] += 1
    return counts


def _shape_from(data: Dict[str, Any], vm: VirtualMachine = None) -> Dict[str, int]:
    return {
        'cpu': parse_bounded_int(data, 'cpu', vm.cpu if vm else config.DEFAULT_VCPUS,
                                 config.MIN_VCPUS, config.MAX_VCPUS, "CPU count"),
        'memory': parse_bounded_int(data, 'memory', vm.memory if vm else config.DEFAULT_MEMORY_MB,
                                    config.MIN_MEMORY_MB, config.MAX_MEMORY_MB, "Memory (MB)"),
        'storage': parse_bounded_int(data, 'storage', vm.storage if vm else config.DEFAULT_STORAGE_GB,
                                     config.MIN_STORAGE_GB, config.MAX_STORAGE_GB, "Storage (GB)"),
    }


def _validate_os(data: Dict[str, Any]) -> str:
    os_name = text_field(data, 'os', 'linux').lower()
    if os_name not in config.OS_TYPES:
        raise ValidationError(f"Invalid OS. Must be one of: {', '.join(config.OS_TYPES)}")
    return os_name


def _owner(user_id) -> User:
    try:
        owner = db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        owner = None
    if not owner:
        raise ValidationError("Owner (user_id) must be an existing user")
    return owner


def _vm_type_id(value) -> Optional[int]:
    if value in (None, ''):
        return None
    try:
        vm_type = db.session.get(VMType, int(value))
    except (TypeError, ValueError):
        vm_type = None
    if not vm_type:
        raise ValidationError("Selected VM type does not exist")
    return vm_type.id


def create_vm(actor: User, data: Dict[str, Any]) -> VirtualMachine:
    """Direct provisioning by an administrator, bypassing the request flow."""
    name = text_field(data, 'name')
    if not name:
        raise ValidationError("VM name is required")
    if VirtualMachine.query.filter_by(name=name).first():
        raise ConflictError(f"A VM named '{name}' already exists")

    owner = _owner(data.get('user_id') or actor.id)
    vm = VirtualMachine(
        name=name,
        user_id=owner.id,
        status=text_field(data, 'status', 'creating'),
        os=_validate_os(data),
        course=optional_text(data, 'course'),
        description=optional_text(data, 'description'),
        vm_type_id=_vm_type_id(data.get('vm_type_id')),
        **_shape_from(data),
    )
    vm.apply_status(vm.status, optional_text(data, 'ip_address'))

    db.session.add(vm)
    try:
        db.session.flush()
        _record_history(vm, None, 'create', actor)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to create VM %s", name)
        raise

    logger.info("Admin %s created VM %s for %s", actor.email, name, owner.email)
    return vm


def update_vm(actor: User, vm_id: int, data: Dict[str, Any]) -> VirtualMachine:
    """Administrative edit, including the raw status and network address."""
    vm = get_vm(actor, vm_id)

    # Validate everything before touching the record
    name = text_field(data, 'name') if 'name' in data else vm.name
    if not name:
        raise ValidationError("VM name is required")
    if name != vm.name and VirtualMachine.query.filter_by(name=name).first():
        raise ConflictError(f"A VM named '{name}' already exists")
    owner_id = _owner(data.get('user_id')).id if 'user_id' in data else vm.user_id
    os_name = _validate_os(data) if 'os' in data else vm.os
    shape = _shape_from(data, vm)
    status = text_field(data, 'status') if 'status' in data else vm.status
    if not status:
        raise ValidationError("Status cannot be empty")
    ip_address = optional_text(data, 'ip_address')
    course = optional_text(data, 'course')
    description = optional_text(data, 'description')

    vm.name = name
    vm.user_id = owner_id
    vm.os = os_name
    for key, value in shape.items():
        setattr(vm, key, value)
    if 'course' in data:
        vm.course = course
    if 'description' in data:
        vm.description = description

    previous = vm.status
    if 'status' in data or 'ip_address' in data:
        vm.apply_status(status, ip_address)
    if 'ip_address' in data and ip_address is None:
        # An explicit null or blank address clears the stored one
        vm.ip_address = None

    if vm.status != previous:
        _record_history(vm, previous, 'update', actor)
    _commit(f"update VM {vm_id}")
    logger.info("Admin %s updated VM %s", actor.email, vm.name)
    return vm


def _read_backend_ip(backend, vm: VirtualMachine, raw: Optional[str]) -> Optional[str]:
    """Address of a running VM; None when stopped or unreadable."""
    if not raw or map_state(raw) is not VMState.RUNNING:
        return None
    try:
        return backend.get_ip(vm.name)
    except (HypervisorError, NotFoundError) as e:
        logger.debug("Could not read address of %s: %s", vm.name, e)
        return None


def _read_backend_status(backend, vm: VirtualMachine, fallback: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Ask the backend for the current status and address.

    A failed read after a successful action is not fatal: the expected
    status is recorded instead.
    """
    try:
        raw = backend.get_state(vm.name)
    except (HypervisorError, NotFoundError) as e:
        logger.warning("Could not read status of %s after action: %s", vm.name, e)
        raw = None
    raw = raw or fallback
    return raw, _read_backend_ip(backend, vm, raw)


def perform_action(user: User, vm_id: int, action: str) -> Tuple[VirtualMachine, str]:
    """Run a lifecycle action (start/stop/shutdown/restart/suspend).

    Raises ConflictError when the action is not offered in the VM's current
    state and HypervisorError when the backend fails (status unchanged).
    """
    action = (action or '').lower()
    if action not in TRANSITION_ACTIONS:
        raise ValidationError(f"Unknown action: {action}")

    vm = get_vm(user, vm_id)
    state = vm.state
    if action not in available_actions(state, is_admin=user.is_admin):
        raise ConflictError(f"Cannot {action} a VM that is {state.value}")

    backend = get_backend()
    message = backend.perform(action, vm.name)

    previous = vm.status
    raw, ip = _read_backend_status(backend, vm, EXPECTED_STATUS[action])
    vm.apply_status(raw, ip)
    _record_history(vm, previous, action, user)
    _commit(f"record {action} of VM {vm.name}")

    logger.info("User %s: %s %s (%s -> %s)", user.email, action, vm.name, previous, vm.status)
    return vm, message


def refresh_vm(user: User, vm_id: int) -> VirtualMachine:
    """Re-read the status from the backend; a no-op for the database backend."""
    vm = get_vm(user, vm_id)
    backend = get_backend()

    raw = backend.get_state(vm.name)
    if raw is None:
        return vm

    ip = _read_backend_ip(backend, vm, raw)
    previous = vm.status
    vm.apply_status(raw, ip)
    if vm.status != previous:
        _record_history(vm, previous, 'refresh', user)
    _commit(f"refresh VM {vm.name}")
    return vm


def delete_vm(actor: User, vm_id: int, remove_storage: bool = False) -> None:
    """Administrative delete. VMs still being created cannot be deleted."""
    if not actor.is_admin:
        raise PermissionDeniedError("Only administrators can delete VMs")
    vm = get_vm(actor, vm_id)
    if vm.state is VMState.CREATING:
        raise ConflictError("Cannot delete a VM that is still being created")

    try:
        get_backend().delete(vm.name, remove_storage=remove_storage)
    except NotFoundError:
        logger.warning("VM %s not present on hypervisor; removing record only", vm.name)

    name = vm.name
    VMRequest.query.filter_by(vm_id=vm.id).update({'vm_id': None})
    db.session.delete(vm)
    _commit(f"delete VM {name}")
    logger.info("Admin %s deleted VM %s (remove_storage=%s)", actor.email, name, remove_storage)


def history(user: User, vm_id: int) -> List[VMStatusHistory]:
    vm = get_vm(user, vm_id)
    return vm.history.all()


def connectable_vm(user: User, vm_id: int) -> VirtualMachine:
    """The VM, if it can be connected to right now."""
    vm = get_vm(user, vm_id)
    if ACTION_CONNECT not in available_actions(vm.state, is_admin=user.is_admin):
        raise ConflictError(f"Cannot connect to a VM that is {vm.state.value}")
    return vm
