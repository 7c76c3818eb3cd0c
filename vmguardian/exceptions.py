#!/usr/bin/env python3
"""
Service-layer exceptions.

Each carries an HTTP status in `code`, which the API error handler in
create_app() uses for the response.
"""


class VMGuardianError(Exception):
    code = 500


class ValidationError(VMGuardianError):
    code = 400


class PermissionDeniedError(VMGuardianError):
    code = 403


class NotFoundError(VMGuardianError):
    code = 404


class ConflictError(VMGuardianError):
    code = 409


class HypervisorError(VMGuardianError):
    """A backend command failed; the stored VM status is left unchanged."""
    code = 502
