"""
client/errors.py -- The single exception type callers of SessionManager see.
"""

from __future__ import annotations

from typing import Optional

import requests

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class ApiError(Exception):
    """A failed API call.

    status_code is None when no HTTP response was received at all
    (connection refused, timeout, DNS failure).
    """

    def __init__(self, status_code: Optional[int], code: str, message: str) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"ApiError(status_code={self.status_code!r}, code={self.code!r}, message={self.message!r})"

    @classmethod
    def from_response(cls, response: requests.Response) -> "ApiError":
        """Build from an error response, trusting only the standard envelope."""
        try:
            error = response.json()["error"]
            code, message = str(error["code"]), str(error["message"])
        except (ValueError, KeyError, TypeError):
            return cls(response.status_code, f"http_{response.status_code}", GENERIC_ERROR_MESSAGE)
        return cls(response.status_code, code, message)

    @classmethod
    def network(cls) -> "ApiError":
        return cls(None, "network_error", GENERIC_ERROR_MESSAGE)
