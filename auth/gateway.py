"""
auth/gateway.py -- Login, registration, token refresh, identity and logout.

The gateway composes the TokenService (auth/tokens.py) with the UserStore
(auth/store.py). It is framework-free: route handlers in api/routes/v1/auth.py
call it and let core.errors exceptions propagate to the API error handler.

Token lifecycle:
  login/register -> issue access + refresh; record refresh fingerprint
  refresh        -> fingerprint must still be in the revocation set AND the
                    token must verify AND its subject must still resolve to an
                    active account; returns a new access token only. The
                    refresh token is not rotated.
  logout         -> remove the fingerprint; idempotent, never fails.

Layer rule: no imports from api/, submissions/, catalog/, or client/.
"""

from __future__ import annotations

import logging

from auth.models import Account, AuthSession, Role
from auth.store import UserStore
from auth.tokens import TokenKind, TokenService
from core.errors import InvalidCredentials, InvalidRefreshToken, InvalidToken, NotFound, Unauthorized

logger = logging.getLogger("oceanos.auth")


class AuthGateway:
    def __init__(self, store: UserStore, tokens: TokenService) -> None:
        self.store = store
        self.tokens = tokens

    def login(self, email: str, secret: str) -> AuthSession:
        """Authenticate by email and secret and open a session.

        Unknown email, wrong secret and inactive account all raise the same
        InvalidCredentials so the response carries no enumeration signal.
        """
        if not self.store.verify_credential(email, secret):
            logger.warning("Login failed")
            raise InvalidCredentials()
        account = self.store.find_by_email(email)
        if account is None:
            raise InvalidCredentials()
        logger.info("Login succeeded for account %s", account.id)
        return self._open_session(account)

    def register(
        self,
        email: str,
        secret: str,
        name: str,
        role: str | Role,
        organization: str | None = None,
    ) -> AuthSession:
        """Create an account and open a session for it.

        Raises InvalidRole before touching the store, and DuplicateAccount if
        the email is taken.
        """
        parsed_role = Role.parse(role)
        account = self.store.create(
            Account(email=email, name=name, role=parsed_role, organization=organization),
            secret,
        )
        logger.info("Registered %s account %s", parsed_role.value, account.id)
        return self._open_session(account)

    def refresh(self, refresh_token: str) -> str:
        """Mint a new access token from a live refresh token."""
        if not refresh_token or not self.store.has_refresh_token(self.tokens.fingerprint(refresh_token)):
            logger.warning("Refresh rejected: token not in revocation set")
            raise InvalidRefreshToken()
        try:
            claims = self.tokens.verify(refresh_token, TokenKind.refresh)
        except InvalidToken as exc:
            logger.warning("Refresh rejected: %s", exc.detail)
            raise InvalidRefreshToken() from exc
        account = self.store.find_by_id(claims.account_id)
        if account is None or not account.is_active:
            logger.warning("Refresh rejected: subject %s no longer resolves", claims.account_id)
            raise InvalidRefreshToken()
        return self.tokens.issue_access_token(account.id, account.role)

    def me(self, access_token: str) -> Account:
        """Resolve an access token to its Account.

        Raises Unauthorized on any verification failure and NotFound when the
        token is valid but its subject has disappeared.
        """
        try:
            claims = self.tokens.verify(access_token, TokenKind.access)
        except InvalidToken as exc:
            raise Unauthorized() from exc
        account = self.store.find_by_id(claims.account_id)
        if account is None:
            raise NotFound("User not found.")
        return account

    def logout(self, refresh_token: str | None) -> None:
        if refresh_token:
            removed = self.store.revoke_refresh_token(self.tokens.fingerprint(refresh_token))
            logger.info("Logout (refresh token %s)", "revoked" if removed else "already absent")

    def _open_session(self, account: Account) -> AuthSession:
        refresh_token = self.tokens.issue_refresh_token(account.id)
        self.store.record_refresh_token(self.tokens.fingerprint(refresh_token), account.id)
        return AuthSession(
            access_token=self.tokens.issue_access_token(account.id, account.role),
            refresh_token=refresh_token,
            account=account,
        )
