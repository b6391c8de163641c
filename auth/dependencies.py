"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and roles.

get_current_account() extracts the bearer token from the
Authorization header, verifies it, resolves the Account and attaches it to
request.state.account for downstream handlers.

require_role(*roles) is a dependency factory that runs
get_current_account() first, then rejects accounts whose role is not allowed.

Both raise core.errors exceptions; api/main.py renders them as 401/403 with
the standard error envelope.

Layer rule: no imports from api/, submissions/, catalog/, or client/.
  auth/dependencies.py may import from fastapi because this module is part of
  the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.gateway import AuthGateway
from auth.models import Account, Role
from auth.tokens import TokenKind
from core.errors import Forbidden, InvalidToken, Unauthorized


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_account(request: Request) -> Account:
    """Require a valid bearer access token. Raises Unauthorized otherwise.

    Missing header, bad signature, expired token, and a subject that is
    missing or inactive all produce the same 401.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(account: Account = Depends(get_current_account)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise Unauthorized()
    gateway: AuthGateway = request.app.state.auth
    try:
        claims = gateway.tokens.verify(token, TokenKind.access)
    except InvalidToken as exc:
        raise Unauthorized() from exc
    account = gateway.store.find_by_id(claims.account_id)
    if account is None or not account.is_active:
        raise Unauthorized()
    request.state.account = account
    return account


def require_role(*roles: Role) -> Callable[..., Account]:
    """Build a dependency that admits only the given roles.

    Use as a FastAPI dependency:
        @router.post("/review")
        async def route(account: Account = Depends(require_role(Role.government))): ...
    """
    allowed = frozenset(roles)

    def _check(account: Account = Depends(get_current_account)) -> Account:
        if account.role not in allowed:
            names = ", ".join(sorted(r.value for r in allowed))
            raise Forbidden(f"This action requires one of the roles: {names}.")
        return account

    return _check
