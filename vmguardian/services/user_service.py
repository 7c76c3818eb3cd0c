#!/usr/bin/env python3
"""
User management service.

Handles registration, authentication, profile edits and the administrative
update path (the only place a role may change).
"""

import logging
import re
from typing import List, Optional

from vmguardian.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from vmguardian.models import ACCOUNT_STATUSES, db, User
from vmguardian.services.access_guard import ROLES

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r'^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$')
MIN_PASSWORD_LENGTH = 6
MIN_NAME_LENGTH = 2


def _normalize_email(email: str) -> str:
    return (email or '').strip().lower()


def _validate_account_fields(email: str, name: str, password: Optional[str], role: str) -> None:
    if not EMAIL_RE.fullmatch(email):
        raise ValidationError("Please enter a valid email address")
    if len((name or '').strip()) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters")
    if password is not None and len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if role not in ROLES:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(ROLES)}")


def get_user_by_email(email: str) -> Optional[User]:
    """Get user by email (case-insensitive)."""
    return User.query.filter_by(email=_normalize_email(email)).first()


def get_user_by_id(user_id: int) -> Optional[User]:
    return db.session.get(User, user_id)


def require_user_by_id(user_id: int) -> User:
    user = get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def create_user(email: str, name: str, password: str, role: str = 'student',
                department: str = None, status: str = 'pending') -> User:
    """Create a new account.

    Self-registration leaves the account pending; admins may create accounts
    directly in any status.
    """
    email = _normalize_email(email)
    _validate_account_fields(email, name, password or '', role)
    if status not in ACCOUNT_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(ACCOUNT_STATUSES)}")

    if get_user_by_email(email):
        raise ConflictError("Email already in use")

    user = User(email=email, name=name.strip(), role=role,
                department=(department or '').strip() or None, status=status)
    user.set_password(password)

    try:
        db.session.add(user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to create user %s", email)
        raise

    logger.info("Created user: %s with role %s (%s)", email, role, status)
    return user


def authenticate_user(email: str, password: str) -> Optional[User]:
    """Check credentials and record activity.

    Returns the user on success, None for bad credentials. Raises
    PermissionDeniedError for a disabled account with correct credentials.
    """
    user = get_user_by_email(email)
    if not user or not password or not user.check_password(password):
        return None

    if not user.can_sign_in:
        logger.info("Sign-in refused for %s account %s", user.status, user.email)
        raise PermissionDeniedError(f"Your account is {user.status}. Please contact an administrator.")

    user.touch()
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to record sign-in for %s", user.email)
        raise
    return user


def list_users(role: str = None, status: str = None) -> List[User]:
    """List users ordered by name, optionally filtered."""
    query = User.query
    if role:
        query = query.filter_by(role=role)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(User.name).all()


def update_profile(user: User, name: str = None, department: str = None) -> User:
    """Self-service profile edit. Role and status are not touchable here."""
    if name is not None:
        if len(name.strip()) < MIN_NAME_LENGTH:
            raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters")
        user.name = name.strip()
    if department is not None:
        user.department = department.strip() or None

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to update profile for %s", user.email)
        raise
    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    if not current_password or not new_password:
        raise ValidationError("Current and new passwords are required")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not user.check_password(current_password):
        raise PermissionDeniedError("Current password is incorrect")

    user.set_password(new_password)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to change password for %s", user.email)
        raise
    logger.info("User %s changed their password", user.email)


def admin_update_user(actor: User, user_id: int, role: str = None,
                      status: str = None, department: str = None) -> User:
    """Administrative update path: role, account status, department.

    Admins cannot change their own role or status, so the last admin cannot
    lock themselves out.
    """
    user = require_user_by_id(user_id)

    if role is not None and role not in ROLES:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(ROLES)}")
    if status is not None and status not in ACCOUNT_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(ACCOUNT_STATUSES)}")
    if user.id == actor.id and ((role and role != user.role) or (status and status != user.status)):
        raise PermissionDeniedError("Admins cannot change their own role or status")

    changes = []
    if role is not None and role != user.role:
        changes.append(f"role {user.role} -> {role}")
        user.role = role
    if status is not None and status != user.status:
        changes.append(f"status {user.status} -> {status}")
        user.status = status
    if department is not None:
        user.department = department.strip() or None

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to update user %s", user.email)
        raise

    if changes:
        logger.info("Admin %s updated %s: %s", actor.email, user.email, ", ".join(changes))
    return user
