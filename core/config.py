"""
core/config.py -- Centralized configuration for the SSO auth service.

All environment variable reads happen here. No module should call os.getenv()
directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. The API
      lifespan and the admin CLI both read it once at startup; nothing mutates
      it afterwards.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file. Field names map to env var names
      (e.g. token_ttl_seconds -> TOKEN_TTL_SECONDS).

Signing secrets are NOT configured here. Each client application carries its
own secret in the apps table; the service has no global signing key.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("ssoauth.config")

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """Service settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in tests
    without a real .env file.
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

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = "sqlite:///sso_auth.db"

    # ------------------------------------------------------------------
    # Tokens and hashing
    # ------------------------------------------------------------------

    # Added to issue time to compute every token's exp claim.
    token_ttl_seconds: int = Field(default=3600, gt=0)
    # bcrypt work factor. Fixed for the life of the process; stored hashes
    # carry their own cost so changing it never invalidates them.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}.")
        return level

    @model_validator(mode="after")
    def warn_on_weak_hashing(self) -> "Settings":
        """Low bcrypt costs are only acceptable in dev mode.

        Tests run with the minimum cost (4) to stay fast. Outside DEBUG a cost
        below 10 is allowed but logged, since it makes offline brute force of
        a leaked users table cheap.
        """
        if not self.debug and self.bcrypt_rounds < 10:
            logger.warning("BCRYPT_ROUNDS=%d is below the recommended minimum of 10.", self.bcrypt_rounds)
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
