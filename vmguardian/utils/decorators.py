#!/usr/bin/env python3
"""
Authentication and authorization decorators.

Every guarded view asks the access guard for a decision on each request.
Page routes get redirects; /api/ routes get JSON errors instead.
"""

import logging
from functools import wraps

from flask import jsonify, redirect, request

from vmguardian.services.access_guard import AccessPolicy, GuardOutcome, evaluate_access
from vmguardian.utils.auth_helpers import get_current_user, resolve_session_state

logger = logging.getLogger(__name__)


def _requested_path() -> str:
    """Path plus query string, used as the post-login destination."""
    if request.query_string:
        return f"{request.path}?{request.query_string.decode('utf-8', 'replace')}"
    return request.path


def _api_response(decision):
    if decision.outcome is GuardOutcome.PENDING:
        response = jsonify({"ok": False, "error": "Session is still being resolved", "pending": True})
        response.status_code = 503
        response.headers['Retry-After'] = '1'
        return response
    if decision.outcome is GuardOutcome.REDIRECT_LOGIN:
        return jsonify({"ok": False, "error": "Not authenticated", "redirect": decision.redirect_url}), 401
    return jsonify({"ok": False, "error": "Insufficient permissions", "redirect": decision.location}), 403


def guarded(policy: AccessPolicy = None):
    """Decorator that lets the access guard decide whether the view runs."""
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            decision = evaluate_access(resolve_session_state(), policy, _requested_path())
            if decision.renders:
                return f(*args, **kwargs)

            logger.debug("Access guard: %s %s -> %s", request.method, request.path, decision.outcome.value)
            if request.path.startswith('/api/'):
                return _api_response(decision)
            if decision.outcome is GuardOutcome.PENDING:
                return jsonify({"ok": False, "pending": True}), 503
            return redirect(decision.redirect_url)
        return wrapper
    return decorator


def login_required(f):
    """Decorator that ensures the user is logged in."""
    return guarded(AccessPolicy.any_user())(f)


def role_required(*roles):
    """Decorator that ensures the user holds one of the given roles."""
    return guarded(AccessPolicy.allow(*roles))


def admin_required(f):
    """Decorator that ensures the user is logged in and is an admin."""
    return guarded(AccessPolicy.require('admin'))(f)


def current_user():
    """Returns the logged-in User, or None."""
    return get_current_user()
