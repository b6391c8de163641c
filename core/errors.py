"""
core/errors.py -- Domain error taxonomy shared by auth/ and submissions/.

Every failure a caller can observe is one of these classes. Each carries a
machine-stable code and the HTTP status the API layer renders it with, so
api/main.py needs a single exception handler instead of a try/except in every
route. Domain code raises; only the API boundary translates.

Layer rule: core/ is the kernel. No imports from api/, auth/, submissions/,
catalog/, or client/.
"""

from __future__ import annotations


class OceanOSError(Exception):
    """Base class for user-visible domain failures."""

    code: str = "error"
    status_code: int = 400
    default_message: str = "Request failed."

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class InvalidCredentials(OceanOSError):
    # Same message for unknown email, wrong secret and inactive account.
    code = "invalid_credentials"
    status_code = 401
    default_message = "Invalid email or password."


class DuplicateAccount(OceanOSError):
    code = "duplicate_account"
    status_code = 400
    default_message = "An account with that email already exists."


class InvalidRole(OceanOSError):
    code = "invalid_role"
    status_code = 400
    default_message = "Role must be one of: government, researcher."


class InvalidToken(OceanOSError):
    code = "invalid_token"
    status_code = 401
    default_message = "Token is invalid or expired."


class InvalidRefreshToken(OceanOSError):
    code = "invalid_refresh_token"
    status_code = 401
    default_message = "Invalid refresh token."


class Unauthorized(OceanOSError):
    code = "unauthorized"
    status_code = 401
    default_message = "Authentication required."


class Forbidden(OceanOSError):
    code = "forbidden"
    status_code = 403
    default_message = "Access denied."


class NotFound(OceanOSError):
    code = "not_found"
    status_code = 404
    default_message = "Not found."


class InvalidState(OceanOSError):
    code = "invalid_state"
    status_code = 400
    default_message = "Operation not allowed in the current state."


class ValidationError(OceanOSError):
    code = "validation_error"
    status_code = 400
    default_message = "Request validation failed."
