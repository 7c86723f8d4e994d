"""
auth/errors.py -- Error taxonomy for the authentication subsystem.

Every rejection the service or the validation pipeline produces is one of the
four AuthError subclasses below. api/main.py renders them into the shared
ErrorResponse envelope; anything that is not an AuthError is a 500.

  ValidationError      422  malformed input, format violations, field mismatches
  AuthenticationError  401  bad/expired/malformed token, bad credentials,
                            refresh token missing from the store
  NotFoundError        404  referenced user absent (401 inside token flows)
  ConflictError        409  duplicate email

Layer rule: no imports from api/ or fastapi.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class. message is a constant from auth.messages."""

    status_code: int = 400
    code: str = "bad_request"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        detail: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AuthError):
    status_code = 422
    code = "validation_error"


class AuthenticationError(AuthError):
    status_code = 401
    code = "unauthorized"


class NotFoundError(AuthError):
    status_code = 404
    code = "not_found"


class ConflictError(AuthError):
    status_code = 409
    code = "conflict"
