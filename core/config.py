"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the account service happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
at process start and pass the Settings object down.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  Explicit hand-off: get_settings() is called only from api/ -- api/main.py
      (lifespan, middleware), api/limiter.py (limiter storage and switch) and
      the login rate-limit callable in api/routes/v1/users.py. TokenCodec and
      CredentialStore receive the Settings instance (or a value read from it)
      through their constructors, so auth/ never touches the environment.

  @model_validator(mode="after"): cross-field validation of the four JWT
      signing secrets after all fields are resolved.

Security notes:
  [S1] Each token kind has its own signing secret. A token minted for one
       purpose cannot verify against another kind's secret, independent of
       the token_type claim inside the payload. Identical secrets would
       collapse that layer, so they are rejected.

  [S2] Secrets shorter than 32 chars are rejected outright (HS256 key entropy).

  [S3] In production mode (DEBUG not set or false), a missing secret is a
       hard startup failure. Dev mode generates random secrets with a warning.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("accounts.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'accounts.db'}"

_SECRET_FIELDS = (
    "jwt_secret_access_token",
    "jwt_secret_refresh_token",
    "jwt_secret_email_verify_token",
    "jwt_secret_forgot_password_token",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Field names map to upper-cased env var names, e.g.
    `jwt_secret_refresh_token` reads from JWT_SECRET_REFRESH_TOKEN.
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
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Token signing -- one secret per token kind [S1]
    # ------------------------------------------------------------------

    # Empty string is the "not configured" sentinel; the validator below
    # either generates a dev secret or raises.
    jwt_secret_access_token: str = ""
    jwt_secret_refresh_token: str = ""
    jwt_secret_email_verify_token: str = ""
    jwt_secret_forgot_password_token: str = ""

    # ------------------------------------------------------------------
    # Token lifetimes (seconds)
    # ------------------------------------------------------------------

    access_token_expire_seconds: int = 15 * 60
    refresh_token_expire_seconds: int = 30 * 24 * 3600
    email_verify_token_expire_seconds: int = 24 * 3600
    forgot_password_token_expire_seconds: int = 3600

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_token_secrets(self) -> "Settings":
        """Enforce the signing-secret policy [S1][S2][S3]."""
        for name in _SECRET_FIELDS:
            if getattr(self, name):
                continue
            if not self.debug:
                raise ValueError(
                    f"{name.upper()} is required in production mode. "
                    "Set it in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
            setattr(self, name, secrets.token_hex(32))
            logger.warning("Using auto-generated %s. Tokens will not survive a restart.", name.upper())

        values = [getattr(self, name) for name in _SECRET_FIELDS]
        if any(len(v) < 32 for v in values):
            raise ValueError("JWT signing secrets must be at least 32 characters.")
        if len(set(values)) != len(values):
            raise ValueError("Each token kind must use a distinct JWT signing secret.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Called from api/ only (main, limiter, route rate limits). In tests: call
    get_settings.cache_clear() if you need to inject different environment
    variables.
    """
    return Settings()
