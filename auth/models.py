"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Mirrors the
approach in submissions/models.py -- dataclasses own domain shape; stores and
the gateway do the work.

Credentials are absent from Account. The secret hash lives in its
own table keyed by email (see auth/store.py) so an Account can be passed
around, serialized and logged without carrying credential material.

Layer rule: no imports from api/, submissions/, catalog/, or client/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from core.errors import InvalidRole


class Role(str, Enum):
    government = "government"
    researcher = "researcher"

    @classmethod
    def parse(cls, value: str | Role) -> Role:
        """Return the Role for value or raise InvalidRole."""
        try:
            return cls(value)
        except ValueError:
            raise InvalidRole(f"Unknown role {str(value)[:30]!r}. Role must be one of: government, researcher.") from None


@dataclass
class Account:
    """An identity in the User Directory.

    email is unique and compared case-sensitively, exactly as stored.
    is_active=False accounts cannot log in, refresh, or pass bearer auth.
    """

    email: str
    name: str
    role: Role
    id: str = ""  # uuid4 hex, assigned by UserStore.create()
    organization: str | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
    is_active: bool = True


@dataclass
class AuthSession:
    """Result of a successful login or registration."""

    access_token: str
    refresh_token: str
    account: Account
