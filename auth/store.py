"""
auth/store.py -- SQLAlchemy Core persistence layer for the User Directory.

Pattern: Repository + Data Mapper (same as submissions/store.py).
UserStore is the repository; _row_to_account is the mapper. The gateway and
dependencies never touch SQL directly.

Storage is in-memory: the default URL is a private SQLite memory
database held on a single StaticPool connection, so all request threads see
the same data and everything resets on restart. Pass a file URL to keep data
across runs during development.

Three tables:
  accounts        -- identity records (Account dataclass)
  credentials     -- email -> bcrypt hash, kept apart from accounts so an
                     Account never carries credential material
  refresh_tokens  -- the revocation set: fingerprints of refresh tokens that
                     are still honourable. Deleting a row revokes the token.

Concurrency: every public method runs under self._lock, so each method is one
critical section even on a threaded server.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/, submissions/, catalog/, or client/.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Account, Role
from auth.tokens import burn_password_check, hash_password, verify_password
from core.db import MEMORY_DB_URL, make_engine
from core.errors import DuplicateAccount

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("role", String(30), nullable=False),
    Column("organization", String(255)),
    Column("created_at", String(32), nullable=False),
    Column("is_active", Integer, nullable=False, server_default="1"),
)

_credentials = Table(
    "credentials",
    _metadata,
    Column("email", String(255), ForeignKey("accounts.email"), primary_key=True),
    Column("secret_hash", Text, nullable=False),
)

_refresh_tokens = Table(
    "refresh_tokens",
    _metadata,
    Column("fingerprint", String(64), primary_key=True),  # HMAC-SHA256 hex
    Column("account_id", String(32), nullable=False),
    Column("issued_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for Account, credential and revocation-set entities.

    Usage:
        store = UserStore()
        account = store.create(Account(email="a@b.org", name="A", role=Role.researcher), "secret")
        store.verify_credential("a@b.org", "secret")   # True
        store.close()
    """

    def __init__(self, db_url: str = MEMORY_DB_URL) -> None:
        self.engine: Engine = make_engine(db_url)
        self._lock = threading.Lock()
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create(self, account: Account, secret: str) -> Account:
        """Insert an account and its credential in one transaction.

        Raises DuplicateAccount if the email is already registered. The id and
        created_at fields are assigned here; the returned Account carries them.
        """
        secret_hash = hash_password(secret)
        created = Account(
            id=uuid.uuid4().hex,
            email=account.email,
            name=account.name,
            role=Role(account.role),
            organization=account.organization,
            created_at=_now_iso(),
            is_active=account.is_active,
        )
        with self._lock:
            try:
                with self.engine.begin() as conn:
                    conn.execute(
                        _accounts.insert().values(
                            id=created.id,
                            email=created.email,
                            name=created.name,
                            role=created.role.value,
                            organization=created.organization,
                            created_at=created.created_at,
                            is_active=1 if created.is_active else 0,
                        )
                    )
                    conn.execute(_credentials.insert().values(email=created.email, secret_hash=secret_hash))
            except IntegrityError as exc:
                raise DuplicateAccount() from exc
        return created

    def find_by_email(self, email: str) -> Account | None:
        """Look up an account by exact email (case-sensitive). Returns None if not found."""
        with self._lock, self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.email == email)).fetchone()
        return _row_to_account(row) if row is not None else None

    def find_by_id(self, account_id: str) -> Account | None:
        """Look up an account by id. Returns None if not found."""
        with self._lock, self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def set_active(self, account_id: str, active: bool) -> bool:
        """Toggle the active flag. Returns True if a row was updated.

        Deactivating also drops every refresh token the account holds, in the
        same transaction; reactivating does not bring them back.
        """
        with self._lock, self.engine.begin() as conn:
            result = conn.execute(
                _accounts.update().where(_accounts.c.id == account_id).values(is_active=1 if active else 0)
            )
            if not active:
                conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.account_id == account_id))
        return result.rowcount > 0

    def count(self) -> int:
        with self._lock, self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_accounts)).scalar() or 0

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def verify_credential(self, email: str, secret: str) -> bool:
        """Return True only for an existing, active account with a matching secret.

        Fails closed: an inactive account returns False even with the right
        secret. bcrypt runs on every path (against a dummy hash when the email
        is unknown) so timing does not reveal which check failed.
        """
        with self._lock, self.engine.connect() as conn:
            row = conn.execute(
                select(_credentials.c.secret_hash, _accounts.c.is_active)
                .select_from(_credentials.join(_accounts, _credentials.c.email == _accounts.c.email))
                .where(_credentials.c.email == email)
            ).fetchone()
        if row is None:
            burn_password_check(secret)
            return False
        if not verify_password(secret, row.secret_hash):
            return False
        return bool(row.is_active)

    # ------------------------------------------------------------------
    # Revocation set
    # ------------------------------------------------------------------

    def record_refresh_token(self, fingerprint: str, account_id: str) -> None:
        with self._lock, self.engine.begin() as conn:
            conn.execute(
                _refresh_tokens.insert().values(fingerprint=fingerprint, account_id=account_id, issued_at=_now_iso())
            )

    def has_refresh_token(self, fingerprint: str) -> bool:
        with self._lock, self.engine.connect() as conn:
            row = conn.execute(
                select(_refresh_tokens.c.fingerprint).where(_refresh_tokens.c.fingerprint == fingerprint)
            ).fetchone()
        return row is not None

    def revoke_refresh_token(self, fingerprint: str) -> bool:
        """Remove a fingerprint from the revocation set.

        Idempotent: revoking an absent fingerprint is not an error. Returns
        True if a row was removed.
        """
        with self._lock, self.engine.begin() as conn:
            result = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.fingerprint == fingerprint))
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        name=row.name,
        role=Role(row.role),
        organization=row.organization,
        created_at=row.created_at,
        is_active=bool(row.is_active),
    )
