"""
auth/tokens.py -- JWT issuing/verification and credential hashing.

Security design decisions:
  JWT: python-jose with HS256. Two token classes, each signed with its own
       secret so a refresh token can never be replayed as an access token
       (and vice versa). Every token also carries a "type" claim that verify()
       checks as a second line of separation.

       access  -- {sub, role, type="access"}, expires 15 minutes after issue.
                  Stateless; never stored server-side.
       refresh -- {sub, jti, type="refresh"}, expires 14 days after issue.
                  Its fingerprint is recorded in the revocation set by the
                  gateway; removal from that set revokes it permanently.

  Fingerprints: the revocation set stores HMAC-SHA256(refresh_secret, token)
       rather than the raw token, so a dump of the store cannot be replayed.

  Passwords: bcrypt directly (no passlib wrapper). _DUMMY_HASH enables timing
       equalization in UserStore.verify_credential() so response time does not
       reveal whether an email exists.

Layer rule: no imports from api/, submissions/, catalog/, or client/. Import
from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache

import bcrypt
from jose import JWTError, jwt

from auth.models import Role
from core.config import get_settings
from core.errors import InvalidToken, ValidationError

logger = logging.getLogger("oceanos.auth")

_ALGORITHM = "HS256"

# bcrypt input limit.
MAX_SECRET_BYTES = 72

ACCESS_TOKEN_TTL = timedelta(minutes=15)
REFRESH_TOKEN_TTL = timedelta(days=14)


class TokenKind(str, Enum):
    access = "access"
    refresh = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a token. role is None for refresh tokens."""

    account_id: str
    role: Role | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Token service
# ---------------------------------------------------------------------------


class TokenService:
    """Issues and verifies signed access and refresh tokens.

    Signing keys are immutable after construction, so one instance is safely
    shared by every request thread.

    now is injectable so tests can mint tokens that are already expired.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secrets = {TokenKind.access: access_secret, TokenKind.refresh: refresh_secret}
        self._now = now

    def issue_access_token(self, account_id: str, role: Role) -> str:
        issued = self._now()
        claims = {
            "sub": account_id,
            "role": Role(role).value,
            "type": TokenKind.access.value,
            "iat": issued,
            "exp": issued + ACCESS_TOKEN_TTL,
        }
        return jwt.encode(claims, self._secrets[TokenKind.access], algorithm=_ALGORITHM)

    def issue_refresh_token(self, account_id: str) -> str:
        """Sign a refresh token.

        The caller must record fingerprint(token) in the revocation set before
        handing the token to the client, otherwise refresh() will reject it.
        jti makes two tokens issued for the same account in the same second
        distinct, so logging out one session never revokes another.
        """
        issued = self._now()
        claims = {
            "sub": account_id,
            "jti": secrets.token_urlsafe(16),
            "type": TokenKind.refresh.value,
            "iat": issued,
            "exp": issued + REFRESH_TOKEN_TTL,
        }
        return jwt.encode(claims, self._secrets[TokenKind.refresh], algorithm=_ALGORITHM)

    def verify(self, token: str, kind: TokenKind) -> TokenClaims:
        """Verify signature, expiry and token class. Raises InvalidToken on any failure."""
        try:
            payload = jwt.decode(token, self._secrets[kind], algorithms=[_ALGORITHM])
        except JWTError as exc:
            raise InvalidToken(detail=str(exc)) from exc
        if payload.get("type") != kind.value or not payload.get("sub"):
            raise InvalidToken(detail="unexpected token class")
        role: Role | None = None
        if kind is TokenKind.access:
            try:
                role = Role(payload.get("role"))
            except ValueError:
                raise InvalidToken(detail="unknown role claim") from None
        return TokenClaims(account_id=payload["sub"], role=role)

    def fingerprint(self, refresh_token: str) -> str:
        """Return HMAC-SHA256(refresh_secret, token) as hex -- the revocation set key."""
        return hmac.new(
            self._secrets[TokenKind.refresh].encode(),
            refresh_token.encode(),
            hashlib.sha256,
        ).hexdigest()


@lru_cache
def get_token_service() -> TokenService:
    """Return the process-wide TokenService built from Settings."""
    settings = get_settings()
    return TokenService(settings.jwt_access_secret, settings.jwt_refresh_secret)


# ---------------------------------------------------------------------------
# Credential hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext secret.

    bcrypt only accepts 72 bytes of input. Longer secrets (UTF-8 encoded)
    raise ValidationError instead of being cut short.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > MAX_SECRET_BYTES:
        raise ValidationError(f"Password must be at most {MAX_SECRET_BYTES} bytes when UTF-8 encoded.")
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext secret matches the bcrypt hash.

    A secret too long to have been hashed can never match.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > MAX_SECRET_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash. Computed once at module load so the first
# failed login is not measurably slower than later ones.
_DUMMY_HASH: str = hash_password("oceanos_timing_dummy")


def burn_password_check(plain: str) -> None:
    """Run one bcrypt comparison against the dummy hash and discard the result."""
    verify_password(plain, _DUMMY_HASH)
