"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login     -- email/password login; returns access + refresh tokens
  POST /api/v1/auth/register  -- create account, then behave like login
  POST /api/v1/auth/refresh   -- new access token from a live refresh token
  GET  /api/v1/auth/me        -- current account (bearer access token)
  POST /api/v1/auth/logout    -- revoke a refresh token; never fails

Handlers are thin: AuthGateway does the work and raises core.errors
exceptions, which api/main.py renders with the standard error envelope.

Security:
  login, register and refresh are rate-limited per client IP.
  Cache-Control: no-store on every response that carries tokens.
  /me reports 401 for any token problem and 404 only when a valid token's
  subject no longer exists.
"""

from fastapi import APIRouter, Request, Response

from api.limiter import limiter
from api.models import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    LogoutResponse,
    MeResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    UserOut,
)
from auth.gateway import AuthGateway
from auth.models import AuthSession
from core.config import get_settings
from core.errors import Unauthorized

# Auth policy:
# - POST /api/v1/auth/login:     public
# - POST /api/v1/auth/register:  public
# - POST /api/v1/auth/refresh:   public -- the refresh token in the body is the credential
# - GET  /api/v1/auth/me:        bearer access token, verified by the gateway
# - POST /api/v1/auth/logout:    public -- revoking a token needs no further proof
router = APIRouter()

_AUTH_RATE_LIMIT = get_settings().login_rate_limit


def _session_response(response: Response, session: AuthSession) -> AuthResponse:
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        user=UserOut.from_account(session.account),
    )


@router.post("/auth/login", response_model=AuthResponse)
@limiter.limit(_AUTH_RATE_LIMIT)
def login(request: Request, response: Response, body: LoginRequest) -> AuthResponse:
    """Authenticate with email and password.

    Unknown email, wrong password and deactivated account return the same
    invalid_credentials error.
    """
    gateway: AuthGateway = request.app.state.auth
    return _session_response(response, gateway.login(body.email, body.password))


@router.post("/auth/register", response_model=AuthResponse)
@limiter.limit(_AUTH_RATE_LIMIT)
def register(request: Request, response: Response, body: RegisterRequest) -> AuthResponse:
    """Create an account (role government or researcher) and sign it in."""
    gateway: AuthGateway = request.app.state.auth
    session = gateway.register(
        email=body.email,
        secret=body.password,
        name=body.name,
        role=body.role,
        organization=body.organization,
    )
    return _session_response(response, session)


@router.post("/auth/refresh", response_model=RefreshResponse)
@limiter.limit(_AUTH_RATE_LIMIT)
def refresh(request: Request, response: Response, body: RefreshRequest) -> RefreshResponse:
    """Mint a new access token. The refresh token itself is not rotated."""
    gateway: AuthGateway = request.app.state.auth
    access_token = gateway.refresh(body.refresh_token)
    response.headers["Cache-Control"] = "no-store"
    return RefreshResponse(access_token=access_token)


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request) -> MeResponse:
    """Return the account behind the bearer access token."""
    gateway: AuthGateway = request.app.state.auth
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized()
    return MeResponse(user=UserOut.from_account(gateway.me(token.strip())))


@router.post("/auth/logout", response_model=LogoutResponse)
def logout(request: Request, body: LogoutRequest | None = None) -> LogoutResponse:
    """Revoke the given refresh token. Succeeds whether or not it was live."""
    gateway: AuthGateway = request.app.state.auth
    gateway.logout(body.refresh_token if body else None)
    return LogoutResponse(success=True)
