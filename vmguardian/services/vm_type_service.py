#!/usr/bin/env python3
"""
VM type (template) management.
"""

import logging
from typing import Any, Dict, List

from vmguardian import config
from vmguardian.exceptions import ConflictError, NotFoundError, ValidationError
from vmguardian.models import db, VirtualMachine, VMRequest, VMType
from vmguardian.utils.validation import text_field

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3


def _clean(data: Dict[str, Any], key: str) -> str:
    return text_field(data, key)


def _validate(name: str, os_type: str) -> None:
    if len(name) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters")
    if not os_type:
        raise ValidationError("OS type is required")
    if os_type not in config.OS_TYPES:
        raise ValidationError(f"Invalid OS type. Must be one of: {', '.join(config.OS_TYPES)}")


def list_vm_types() -> List[VMType]:
    return VMType.query.order_by(VMType.name).all()


def get_vm_type(type_id: int) -> VMType:
    vm_type = db.session.get(VMType, type_id)
    if not vm_type:
        raise NotFoundError("VM type not found")
    return vm_type


def create_vm_type(data: Dict[str, Any]) -> VMType:
    name = _clean(data, 'name')
    os_type = _clean(data, 'os_type').lower()
    _validate(name, os_type)

    if VMType.query.filter_by(name=name).first():
        raise ConflictError(f"A VM type named '{name}' already exists")

    vm_type = VMType(
        name=name,
        os_type=os_type,
        iso_path=_clean(data, 'iso_path') or None,
        description=_clean(data, 'description') or None,
    )
    try:
        db.session.add(vm_type)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to create VM type %s", name)
        raise

    logger.info("Created VM type %s (%s)", name, os_type)
    return vm_type


def update_vm_type(type_id: int, data: Dict[str, Any]) -> VMType:
    """Partial update: only keys present in data are changed."""
    vm_type = get_vm_type(type_id)

    name = _clean(data, 'name') if 'name' in data else vm_type.name
    os_type = _clean(data, 'os_type').lower() if 'os_type' in data else vm_type.os_type
    _validate(name, os_type)

    if name != vm_type.name:
        clash = VMType.query.filter(VMType.name == name, VMType.id != vm_type.id).first()
        if clash:
            raise ConflictError(f"A VM type named '{name}' already exists")

    vm_type.name = name
    vm_type.os_type = os_type
    if 'iso_path' in data:
        vm_type.iso_path = _clean(data, 'iso_path') or None
    if 'description' in data:
        vm_type.description = _clean(data, 'description') or None

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to update VM type %s", type_id)
        raise
    return vm_type


def delete_vm_type(type_id: int) -> None:
    """Delete a VM type that nothing references."""
    vm_type = get_vm_type(type_id)

    vm_count = VirtualMachine.query.filter_by(vm_type_id=vm_type.id).count()
    request_count = VMRequest.query.filter_by(vm_type_id=vm_type.id).count()
    if vm_count or request_count:
        raise ConflictError(
            f"VM type '{vm_type.name}' is in use by {vm_count} VM(s) and "
            f"{request_count} request(s) and cannot be deleted"
        )

    try:
        db.session.delete(vm_type)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to delete VM type %s", type_id)
        raise
    logger.info("Deleted VM type %s", vm_type.name)
