"""
tests/test_auth_gateway.py -- AuthGateway: login, register, refresh, me, logout.

Covers the token lifecycle end to end without HTTP:
  - login succeeds only for matching credentials on an active account, and
    every failure mode raises the same InvalidCredentials
  - register validates the role before creating anything
  - refresh requires a token that is both in the revocation set and verifiable
  - logout revokes exactly one session and never fails
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from auth.gateway import AuthGateway
from auth.models import Role
from auth.tokens import REFRESH_TOKEN_TTL, TokenKind, TokenService
from conftest import TEST_ACCESS_SECRET, TEST_REFRESH_SECRET
from core.errors import (
    DuplicateAccount,
    InvalidCredentials,
    InvalidRefreshToken,
    InvalidRole,
    NotFound,
    Unauthorized,
)


def _register(gateway, email="r1@lab.org", role="researcher"):
    return gateway.register(email=email, secret="reef-secret", name="R One", role=role, organization="Reef Lab")


class TestLogin:
    def test_login_returns_session(self, gateway):
        created = _register(gateway)
        session = gateway.login("r1@lab.org", "reef-secret")
        assert session.account.id == created.account.id
        claims = gateway.tokens.verify(session.access_token, TokenKind.access)
        assert claims.account_id == created.account.id
        assert claims.role is Role.researcher

    @pytest.mark.parametrize(
        "email, secret",
        [("r1@lab.org", "wrong-secret"), ("nobody@lab.org", "reef-secret")],
    )
    def test_bad_credentials_are_indistinguishable(self, gateway, email, secret):
        _register(gateway)
        with pytest.raises(InvalidCredentials) as exc_info:
            gateway.login(email, secret)
        assert exc_info.value.message == "Invalid email or password."

    def test_inactive_account_cannot_login(self, gateway, users):
        created = _register(gateway)
        users.set_active(created.account.id, False)
        with pytest.raises(InvalidCredentials):
            gateway.login("r1@lab.org", "reef-secret")


class TestRegister:
    def test_register_opens_session(self, gateway, users):
        session = _register(gateway, role="government")
        assert session.account.role is Role.government
        assert session.account.organization == "Reef Lab"
        assert users.has_refresh_token(gateway.tokens.fingerprint(session.refresh_token))

    def test_invalid_role_creates_nothing(self, gateway, users):
        with pytest.raises(InvalidRole):
            _register(gateway, role="admin")
        assert users.count() == 0

    def test_duplicate_email(self, gateway):
        _register(gateway)
        with pytest.raises(DuplicateAccount):
            _register(gateway)


class TestRefresh:
    def test_refresh_returns_new_access_token(self, gateway):
        session = _register(gateway)
        access = gateway.refresh(session.refresh_token)
        claims = gateway.tokens.verify(access, TokenKind.access)
        assert claims.account_id == session.account.id
        assert claims.role is Role.researcher

    def test_refresh_token_is_not_rotated(self, gateway):
        session = _register(gateway)
        gateway.refresh(session.refresh_token)
        assert gateway.refresh(session.refresh_token)

    def test_refresh_after_logout_fails(self, gateway):
        session = _register(gateway)
        gateway.logout(session.refresh_token)
        with pytest.raises(InvalidRefreshToken):
            gateway.refresh(session.refresh_token)

    def test_access_token_is_not_a_refresh_token(self, gateway):
        session = _register(gateway)
        with pytest.raises(InvalidRefreshToken):
            gateway.refresh(session.access_token)

    def test_unrecorded_but_validly_signed_token_fails(self, gateway):
        session = _register(gateway)
        unrecorded = gateway.tokens.issue_refresh_token(session.account.id)
        with pytest.raises(InvalidRefreshToken):
            gateway.refresh(unrecorded)

    def test_inactive_account_cannot_refresh(self, gateway, users):
        session = _register(gateway)
        users.set_active(session.account.id, False)
        with pytest.raises(InvalidRefreshToken):
            gateway.refresh(session.refresh_token)

    def test_empty_token(self, gateway):
        with pytest.raises(InvalidRefreshToken):
            gateway.refresh("")

    @pytest.mark.parametrize(
        "age, ok",
        [(REFRESH_TOKEN_TTL - timedelta(minutes=1), True), (REFRESH_TOKEN_TTL + timedelta(seconds=1), False)],
    )
    def test_refresh_token_lifetime(self, gateway, users, age, ok):
        issued_at = datetime.now(timezone.utc) - age
        past = AuthGateway(users, TokenService(TEST_ACCESS_SECRET, TEST_REFRESH_SECRET, now=lambda: issued_at))
        session = _register(past)
        assert users.has_refresh_token(gateway.tokens.fingerprint(session.refresh_token))
        if ok:
            assert gateway.refresh(session.refresh_token)
        else:
            with pytest.raises(InvalidRefreshToken):
                gateway.refresh(session.refresh_token)
            # Expired, yet never revoked.
            assert users.has_refresh_token(gateway.tokens.fingerprint(session.refresh_token))

    def test_deactivation_revokes_sessions(self, gateway, users):
        session = _register(gateway)
        users.set_active(session.account.id, False)
        assert not users.has_refresh_token(gateway.tokens.fingerprint(session.refresh_token))


class TestMe:
    def test_me_resolves_account(self, gateway):
        session = _register(gateway)
        assert gateway.me(session.access_token).email == "r1@lab.org"

    def test_garbage_token_is_unauthorized(self, gateway):
        with pytest.raises(Unauthorized):
            gateway.me("garbage")

    def test_refresh_token_is_unauthorized(self, gateway):
        session = _register(gateway)
        with pytest.raises(Unauthorized):
            gateway.me(session.refresh_token)

    def test_valid_token_for_missing_account_is_not_found(self, gateway):
        token = gateway.tokens.issue_access_token("no-such-account", Role.researcher)
        with pytest.raises(NotFound):
            gateway.me(token)


class TestLogout:
    def test_logout_is_idempotent(self, gateway):
        session = _register(gateway)
        gateway.logout(session.refresh_token)
        gateway.logout(session.refresh_token)
        gateway.logout("never-issued")
        gateway.logout(None)

    def test_logout_revokes_only_that_session(self, gateway):
        _register(gateway)
        first = gateway.login("r1@lab.org", "reef-secret")
        second = gateway.login("r1@lab.org", "reef-secret")
        gateway.logout(first.refresh_token)
        with pytest.raises(InvalidRefreshToken):
            gateway.refresh(first.refresh_token)
        assert gateway.refresh(second.refresh_token)
