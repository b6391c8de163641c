"""
core/config.py -- OceanOS settings, server side and client side.

Every environment read goes through this module; nothing else touches
os.environ. Two BaseSettings classes, each behind an lru_cache accessor:

  Settings        -- the API server. Plain env names (JWT_ACCESS_SECRET,
                     SEED_DEMO_DATA, ...) plus an optional .env file.
  ClientSettings  -- the client library and CLI, prefixed OCEANOS_. Needs no
                     server secrets.

Settings runs one model_validator(mode="after") over the signing secrets
once every field is resolved.

Signing secrets:
  JWT_ACCESS_SECRET signs access tokens, JWT_REFRESH_SECRET signs refresh
  tokens. They must be distinct and at least 32 characters long. In debug mode
  a missing secret falls back to the INSECURE_DEV_* constants below, which are
  public (they live in this file) and must never be used outside local
  development. In production mode a missing secret is a hard startup failure.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
submissions/, catalog/, or client/.
"""

import logging
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("oceanos.config")

# Local scaffolding only. Anyone who can read this repository can forge tokens
# signed with these values.
INSECURE_DEV_ACCESS_SECRET = "insecure-dev-access-secret-do-not-deploy"
INSECURE_DEV_REFRESH_SECRET = "insecure-dev-refresh-secret-do-not-deploy"

_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file (with DEBUG=true).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    seed_demo_data: bool = True

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the "not configured" sentinel; see validate_secrets().
    jwt_access_secret: str = ""
    jwt_refresh_secret: str = ""

    login_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True
    # bcrypt cost factor. Tests lower this to 4 to keep the suite fast.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:8080",
            "http://127.0.0.1:8080",
        ]
    )

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the signing-secret policy.

        Debug mode: missing secrets fall back to the insecure dev constants
            with a warning.
        Production mode: missing secrets refuse to start.
        Both modes: secrets must be at least 32 characters and distinct.
        """
        if not self.jwt_access_secret or not self.jwt_refresh_secret:
            if not self.debug:
                raise ValueError(
                    "JWT_ACCESS_SECRET and JWT_REFRESH_SECRET are required in production mode. "
                    "Set them in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
            if not self.jwt_access_secret:
                self.jwt_access_secret = INSECURE_DEV_ACCESS_SECRET
            if not self.jwt_refresh_secret:
                self.jwt_refresh_secret = INSECURE_DEV_REFRESH_SECRET
            logger.warning(
                "Using insecure development JWT secrets. Never run this configuration outside local development."
            )
        for name in ("jwt_access_secret", "jwt_refresh_secret"):
            if len(getattr(self, name)) < _MIN_SECRET_LENGTH:
                raise ValueError(f"{name.upper()} must be at least {_MIN_SECRET_LENGTH} characters.")
        if self.jwt_access_secret == self.jwt_refresh_secret:
            raise ValueError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must be different.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()


class ClientSettings(BaseSettings):
    """Settings for the HTTP client and CLI.

    Kept apart from Settings so a client machine never needs the server's
    signing secrets to start.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="OCEANOS_",
        extra="ignore",
    )

    api_base_url: str = "http://localhost:8000/api/v1"
    # Written into the X-Provenance header of every request.
    client_environment: str = "development"
    token_file: str = "~/.oceanos/tokens.json"
    request_timeout: float = Field(default=30.0, gt=0)


@lru_cache
def get_client_settings() -> ClientSettings:
    return ClientSettings()
