"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for TaskTracker happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  Frozen model: Settings is immutable once built. api/main.py hands the
      instance to the app as app.state.settings; token and cookie helpers
      receive it as an argument instead of reading a mutable global.

  @model_validator(mode="before"): Resolves the values that depend on other
      fields (dev-mode SECRET_KEY, secure cookie default) before the frozen
      model is constructed, since a frozen model cannot be patched afterwards.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. JWT HS256 signing
  relies on key entropy -- a short key weakens every issued session.

  In production mode (DEBUG not set or false), a missing SECRET_KEY is a
  hard startup failure, and cookies default to Secure.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or tasks/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("tasktracker.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'tasktracker.db'}"

_bool = TypeAdapter(bool)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `database_url` from DATABASE_URL.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The validator below
    # either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = 5000
    allowed_origin: str = "http://localhost:5173"
    api_prefix: str = "/api/auth"

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    # None means "follow the environment": Secure in production, off in debug.
    secure_cookies: bool | None = None
    token_expire_seconds: int = 24 * 60 * 60
    session_cookie_name: str = "token"

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="before")
    @classmethod
    def resolve_environment_defaults(cls, data: Any) -> Any:
        """Fill SECRET_KEY and secure_cookies according to DEBUG.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        debug = _bool.validate_python(data.get("debug") or False)

        if not data.get("secret_key"):
            if debug:
                data["secret_key"] = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(str(data["secret_key"])) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")

        if data.get("secure_cookies") in (None, ""):
            data["secure_cookies"] = not debug
        return data


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
