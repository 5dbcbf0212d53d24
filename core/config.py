"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the storefront happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. app_secret -> APP_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Used to refuse startup without a signing
      secret.

Security notes:
  APP_SECRET has no default, not even in DEBUG mode. Session tokens signed
  with a generated key would silently stop verifying after a restart, so a
  missing secret is a hard startup failure everywhere.

  APP_SECRET shorter than 32 chars is rejected outright. JWT signing relies on
  key entropy -- a short key weakens every issued session token.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or shop/.
"""

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ONE_YEAR_SECONDS = 60 * 60 * 24 * 365
ONE_HOUR_SECONDS = 60 * 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Everything except app_secret has a default so tests only need to export
    APP_SECRET. The model_validator enforces the secret policy at startup.
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
    # Empty string is the sentinel for "not configured". The model_validator
    # below raises on it, so callers never see "".
    app_secret: str = ""
    database_url: str = "sqlite:///storefront.db"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:7777", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Sessions and credentials
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    # Cookie max-age and JWT exp are kept in sync: one long-lived session.
    cookie_max_age_seconds: int = ONE_YEAR_SECONDS
    reset_token_ttl_seconds: int = ONE_HOUR_SECONDS
    bcrypt_rounds: int = 10

    # ------------------------------------------------------------------
    # Mail (empty smtp_host = dev mode, reset mails are logged instead)
    # ------------------------------------------------------------------

    frontend_url: str = "http://localhost:7777"
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    mail_from: str = "no-reply@storefront.local"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_app_secret(self) -> "Settings":
        """Refuse to start without a usable signing secret.

        Missing: raise, regardless of DEBUG. There is no fallback key.
        Short (<32 chars): raise. HS256 with a short key is brute-forceable.
        """
        if not self.app_secret:
            raise ValueError(
                "APP_SECRET is required. Set APP_SECRET in your environment or .env file."
            )
        if len(self.app_secret) < 32:
            raise ValueError("APP_SECRET must be at least 32 characters.")
        if self.bcrypt_rounds < 4 or self.bcrypt_rounds > 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    Only the composition root (api/main.py) should call this; services receive
    the values they need through their constructors.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
