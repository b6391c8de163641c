"""
tests/conftest.py -- Shared test fixtures for OceanOS unit and integration tests.

This module provides:
  - users / submission_store / catalog: fresh in-memory stores per test
  - tokens / gateway / workflow: services wired to those stores
  - client: TestClient over the real app with a patched lifespan, so routes
    run against the same per-test stores
  - register_account(): create an account over HTTP and return its session

Each store built with the default URL owns a private SQLite memory database
pinned to one connection (core/db.py), so tests never share state.

Environment must be set before any project import: get_settings() is cached
on first use, and api.limiter reads rate_limit_enabled at import time.
"""

from __future__ import annotations

import os

# CRITICAL: before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SEED_DEMO_DATA"] = "false"

from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.gateway import AuthGateway
from auth.store import UserStore
from auth.tokens import TokenService
from catalog.store import CatalogStore
from submissions.store import SubmissionStore
from submissions.workflow import ApprovalWorkflow

TEST_ACCESS_SECRET = "test-access-secret-0123456789abcdef"
TEST_REFRESH_SECRET = "test-refresh-secret-0123456789abcdef"
TEST_PASSWORD = "reef-secret-1"


# ---------------------------------------------------------------------------
# Stores and services
# ---------------------------------------------------------------------------


@pytest.fixture
def users() -> Generator[UserStore, None, None]:
    store = UserStore()
    yield store
    store.close()


@pytest.fixture
def submission_store() -> Generator[SubmissionStore, None, None]:
    store = SubmissionStore()
    yield store
    store.close()


@pytest.fixture
def catalog() -> CatalogStore:
    return CatalogStore()


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_ACCESS_SECRET, TEST_REFRESH_SECRET)


@pytest.fixture
def gateway(users: UserStore, tokens: TokenService) -> AuthGateway:
    return AuthGateway(users, tokens)


@pytest.fixture
def workflow(submission_store: SubmissionStore) -> ApprovalWorkflow:
    return ApprovalWorkflow(submission_store)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


def _patch_lifespan(users, submissions, catalog, gateway, workflow):
    """Return a lifespan that installs the given test objects on app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.users = users
        app.state.submissions = submissions
        app.state.catalog = catalog
        app.state.auth = gateway
        app.state.workflow = workflow
        yield

    return test_lifespan


@pytest.fixture
def client(users, submission_store, catalog, gateway, workflow) -> Generator[TestClient, None, None]:
    """TestClient over the real app; routes see this test's stores."""
    app.router.lifespan_context = _patch_lifespan(users, submission_store, catalog, gateway, workflow)
    with TestClient(app, raise_server_exceptions=True) as test_client:
        yield test_client


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register_account(
    client: TestClient,
    email: str,
    role: str = "researcher",
    name: Optional[str] = None,
    organization: Optional[str] = None,
) -> dict[str, Any]:
    """Register over HTTP and return the response body ({accessToken, refreshToken, user})."""
    body = {"email": email, "password": TEST_PASSWORD, "name": name or email.split("@")[0], "role": role}
    if organization:
        body["organization"] = organization
    resp = client.post("/api/v1/auth/register", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()
