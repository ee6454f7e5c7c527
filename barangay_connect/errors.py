"""
Error taxonomy for the JSON API.

Handlers in `app.py` turn every `ApiError` into the envelope
`{"message": ..., "errors": {...}}` with the error's status code.
"""
from __future__ import annotations


class ApiError(Exception):
    status_code = 500
    default_message = "An unexpected error occurred."

    def __init__(self, message: str | None = None, errors: dict | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.errors = errors

    def to_dict(self) -> dict:
        payload = {"message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(ApiError):
    """Malformed or out-of-range input."""

    status_code = 400
    default_message = "Validation error"


class ConflictError(ApiError):
    """Uniqueness violation such as a duplicate email."""

    status_code = 400
    default_message = "Resource already exists"


class AuthenticationError(ApiError):
    """Missing, unknown or expired bearer token."""

    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(ApiError):
    """Valid session whose principal lacks the required role or unit."""

    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class InternalError(ApiError):
    status_code = 500
    default_message = "An unexpected error occurred. Please try again later."
