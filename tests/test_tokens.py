"""
tests/test_tokens.py -- Unit tests for auth/tokens.py.

Covers:
  - access and refresh tokens round-trip through verify() with the right claims
  - the two token classes are not interchangeable
  - expiry, tampering and garbage input raise InvalidToken
  - refresh tokens for the same account are distinct (jti)
  - fingerprints are stable, keyed, and never the raw token
  - bcrypt helpers
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.models import Role
from auth.tokens import (
    ACCESS_TOKEN_TTL,
    REFRESH_TOKEN_TTL,
    TokenKind,
    TokenService,
    hash_password,
    verify_password,
)
from conftest import TEST_ACCESS_SECRET, TEST_REFRESH_SECRET
from core.errors import InvalidToken


def test_access_token_round_trip(tokens):
    token = tokens.issue_access_token("acc1", Role.government)
    claims = tokens.verify(token, TokenKind.access)
    assert claims.account_id == "acc1"
    assert claims.role is Role.government


def test_access_token_claims_and_ttl(tokens):
    token = tokens.issue_access_token("acc1", Role.researcher)
    payload = jwt.get_unverified_claims(token)
    assert payload["type"] == "access"
    assert payload["role"] == "researcher"
    assert payload["exp"] - payload["iat"] == int(ACCESS_TOKEN_TTL.total_seconds())


def test_refresh_token_round_trip(tokens):
    token = tokens.issue_refresh_token("acc1")
    claims = tokens.verify(token, TokenKind.refresh)
    assert claims.account_id == "acc1"
    assert claims.role is None
    payload = jwt.get_unverified_claims(token)
    assert payload["exp"] - payload["iat"] == int(REFRESH_TOKEN_TTL.total_seconds())


def test_refresh_tokens_are_unique(tokens):
    assert tokens.issue_refresh_token("acc1") != tokens.issue_refresh_token("acc1")


def test_refresh_token_rejected_as_access(tokens):
    with pytest.raises(InvalidToken):
        tokens.verify(tokens.issue_refresh_token("acc1"), TokenKind.access)


def test_access_token_rejected_as_refresh(tokens):
    with pytest.raises(InvalidToken):
        tokens.verify(tokens.issue_access_token("acc1", Role.researcher), TokenKind.refresh)


def test_type_claim_checked_even_with_matching_key():
    # Same secret for both classes: only the type claim separates them.
    shared = TokenService(TEST_ACCESS_SECRET, TEST_ACCESS_SECRET)
    with pytest.raises(InvalidToken):
        shared.verify(shared.issue_refresh_token("acc1"), TokenKind.access)


def test_expired_access_token_rejected():
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    stale = TokenService(TEST_ACCESS_SECRET, TEST_REFRESH_SECRET, now=lambda: past)
    token = stale.issue_access_token("acc1", Role.researcher)
    with pytest.raises(InvalidToken):
        stale.verify(token, TokenKind.access)


def test_token_signed_with_other_secret_rejected(tokens):
    forged = TokenService("x" * 40, "y" * 40).issue_access_token("acc1", Role.government)
    with pytest.raises(InvalidToken):
        tokens.verify(forged, TokenKind.access)


@pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
def test_garbage_rejected(tokens, garbage):
    with pytest.raises(InvalidToken):
        tokens.verify(garbage, TokenKind.access)


def test_unknown_role_claim_rejected(tokens):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "acc1", "role": "admin", "type": "access", "iat": now, "exp": now + timedelta(minutes=5)},
        TEST_ACCESS_SECRET,
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        tokens.verify(token, TokenKind.access)


def test_fingerprint_is_stable_and_keyed(tokens):
    token = tokens.issue_refresh_token("acc1")
    fp = tokens.fingerprint(token)
    assert fp == tokens.fingerprint(token)
    assert len(fp) == 64
    assert token not in fp
    other = TokenService(TEST_ACCESS_SECRET, "z" * 40)
    assert other.fingerprint(token) != fp


def test_password_hash_round_trip():
    hashed = hash_password("reef-secret")
    assert hashed != "reef-secret"
    assert verify_password("reef-secret", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_with_malformed_hash_is_false():
    assert verify_password("anything", "not-a-bcrypt-hash") is False
