#!/usr/bin/env python3
"""
Authentication helper utilities.

Shared session functions used across routes.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

from flask import session

from vmguardian.models import db, User
from vmguardian.services.access_guard import SessionState, SessionUser

logger = logging.getLogger(__name__)


def get_current_user() -> Optional[User]:
    """
    Get current logged-in user from session.

    Returns:
        User object if the session points at an account that may sign in,
        None otherwise
    """
    user_id = session.get('user_id')
    if not user_id:
        return None

    user = db.session.get(User, user_id)
    if not user or not user.can_sign_in:
        return None
    return user


def resolve_session_state() -> SessionState:
    """Turn the Flask session into the explicit state the access guard needs.

    A session that points at a missing or disabled account is cleared.
    """
    if not session.get('user_id'):
        return SessionState.unauthenticated()

    user = get_current_user()
    if not user:
        logger.info("Dropping stale session for user id %s", session.get('user_id'))
        session.clear()
        return SessionState.unauthenticated()

    return SessionState.authenticated(SessionUser(id=user.id, role=user.role, email=user.email))


def login_session(user: User) -> None:
    """Start a session for an authenticated user."""
    session.clear()
    session.permanent = True
    session['user_id'] = user.id
    session['role'] = user.role


def logout_session() -> None:
    session.clear()


def safe_next_path(candidate: Optional[str]) -> Optional[str]:
    """Accept only same-site absolute paths as post-login destinations.

    Browsers read a backslash as a slash, so '/\\host' is treated like
    '//host' and rejected.
    """
    if not isinstance(candidate, str) or not candidate.startswith('/'):
        return None
    if candidate.startswith('//') or '\\' in candidate:
        return None
    parts = urlsplit(candidate)
    if parts.scheme or parts.netloc:
        return None
    return candidate
