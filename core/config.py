"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for YAccounting happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, encryption_key -> ENCRYPTION_KEY).

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Dev mode (DEBUG=true) generates missing secrets with a
      warning; production mode refuses to start without them.

Security notes:
  SECRET_KEY signs session tokens. ENCRYPTION_KEY is the secret the AES-256 key
  is derived from. Both must be at least 32 characters.

  TOKEN_VERIFY_KEY is empty unless key separation is explicitly wanted. When
  empty, tokens are verified with SECRET_KEY.

Layer rule: core/ is the kernel. This module may not import from api/, auth/
or ledger/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("yaccounting.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'yaccounting.db'}"

_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
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
    log_level: str = "INFO"
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Secrets -- empty string is the "not configured" sentinel
    # ------------------------------------------------------------------

    secret_key: str = ""
    token_verify_key: str = ""
    encryption_key: str = ""

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_expire_seconds: int = Field(default=3600, gt=0)
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the secret policy for SECRET_KEY and ENCRYPTION_KEY.

        Dev mode (DEBUG=true): auto-generate a missing secret with a warning.
            Tokens and encrypted entries will not survive a restart.

        Production mode: refuse to start if either secret is missing.

        Both modes: reject secrets shorter than 32 characters.
        """
        for field_name in ("secret_key", "encryption_key"):
            value = getattr(self, field_name)
            env_name = field_name.upper()
            if not value:
                if not self.debug:
                    raise ValueError(
                        f"{env_name} is required in production mode. "
                        f"Set {env_name} in your environment or .env file. "
                        "To run in development mode, set DEBUG=true."
                    )
                value = secrets.token_hex(32)
                setattr(self, field_name, value)
                logger.warning("Using auto-generated %s. It will not persist across restarts.", env_name)
            if len(value) < _MIN_SECRET_LENGTH:
                raise ValueError(f"{env_name} must be at least {_MIN_SECRET_LENGTH} characters.")
        if self.token_verify_key and len(self.token_verify_key) < _MIN_SECRET_LENGTH:
            raise ValueError(f"TOKEN_VERIFY_KEY must be at least {_MIN_SECRET_LENGTH} characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
