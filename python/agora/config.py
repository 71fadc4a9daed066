"""Application settings loaded from environment variables.

Environment Configuration:
    AGORA_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: Database connection string (required)
    SITE_BASE_URL: Public forum URL used when linking posts in system messages

Redis / Celery Configuration:
    REDIS_URL: Redis connection string (required for worker)
    CELERY_BROKER_URL: Celery broker URL (defaults to REDIS_URL)
    CELERY_RESULT_BACKEND: Celery result backend URL (defaults to REDIS_URL)

Auth Configuration:
    AUTH_JWT_SECRET: HS256 signing secret (required in staging/prod)
    AUTH_JWT_AUDIENCE: Expected JWT audience

Saved Search Configuration:
    SAVED_SEARCHES_MIN_TRUST_LEVEL: Minimum trust level to use saved searches (0-4)
    SAVED_SEARCH_RECENCY_HOURS: Only posts newer than this are reported
    SAVED_SEARCH_RESULTS_PER_TERM: Maximum posts listed per term per message
    SAVED_SEARCH_MAX_TERMS: Maximum saved terms per user
    SAVED_SEARCH_MAX_TERM_LENGTH: Maximum characters per term
    SAVED_SEARCH_SCHEDULE_MINUTES: Interval between scheduler sweeps
    SYSTEM_USERNAME: Username of the account that authors system messages
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

# Trust levels are ordinal: 0 (new) .. 4 (leader)
MIN_TRUST_LEVEL = 0
MAX_TRUST_LEVEL = 4

# Used only when AUTH_JWT_SECRET is unset in local/test
DEV_JWT_SECRET = "agora-dev-secret-do-not-use-in-production"


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - DATABASE_URL is always required
    - AUTH_JWT_SECRET is required in staging and prod only
    - SAVED_SEARCHES_MIN_TRUST_LEVEL must be a valid trust level (0-4)
    - Saved search limits must be >= 1
    """

    agora_env: Environment = Field(default=Environment.LOCAL, alias="AGORA_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    site_base_url: str = Field(default="http://localhost:3000", alias="SITE_BASE_URL")

    # Redis / Celery settings
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    celery_broker_url: str | None = Field(default=None, alias="CELERY_BROKER_URL")
    celery_result_backend: str | None = Field(default=None, alias="CELERY_RESULT_BACKEND")

    # Auth settings
    auth_jwt_secret: str | None = Field(default=None, alias="AUTH_JWT_SECRET")
    auth_jwt_audience: str = Field(default="agora", alias="AUTH_JWT_AUDIENCE")

    # Saved searches
    saved_searches_min_trust_level: int = Field(default=1, alias="SAVED_SEARCHES_MIN_TRUST_LEVEL")
    saved_search_recency_hours: int = Field(default=24, alias="SAVED_SEARCH_RECENCY_HOURS")
    saved_search_results_per_term: int = Field(default=5, alias="SAVED_SEARCH_RESULTS_PER_TERM")
    saved_search_max_terms: int = Field(default=5, alias="SAVED_SEARCH_MAX_TERMS")
    saved_search_max_term_length: int = Field(default=100, alias="SAVED_SEARCH_MAX_TERM_LENGTH")
    saved_search_schedule_minutes: int = Field(default=1440, alias="SAVED_SEARCH_SCHEDULE_MINUTES")
    system_username: str = Field(default="system", alias="SYSTEM_USERNAME")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("saved_searches_min_trust_level")
    @classmethod
    def validate_trust_level(cls, v: int) -> int:
        if not MIN_TRUST_LEVEL <= v <= MAX_TRUST_LEVEL:
            raise ValueError(
                f"SAVED_SEARCHES_MIN_TRUST_LEVEL must be between "
                f"{MIN_TRUST_LEVEL} and {MAX_TRUST_LEVEL}, got {v}"
            )
        return v

    @field_validator(
        "saved_search_recency_hours",
        "saved_search_results_per_term",
        "saved_search_max_terms",
        "saved_search_max_term_length",
        "saved_search_schedule_minutes",
    )
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name.upper()} must be >= 1, got {v}")
        return v

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure secrets are configured outside local/test."""
        if self.agora_env in (Environment.STAGING, Environment.PROD):
            if not self.auth_jwt_secret:
                raise ValueError(
                    f"AUTH_JWT_SECRET is required for AGORA_ENV={self.agora_env.value}"
                )
        return self

    @property
    def effective_jwt_secret(self) -> str:
        """Return the JWT secret, falling back to the dev secret in local/test."""
        return self.auth_jwt_secret or DEV_JWT_SECRET

    @property
    def normalized_site_base_url(self) -> str:
        """Return site base URL with trailing slash stripped."""
        return self.site_base_url.rstrip("/")

    @property
    def effective_celery_broker_url(self) -> str | None:
        """Return Celery broker URL, falling back to REDIS_URL if not set."""
        return self.celery_broker_url or self.redis_url

    @property
    def effective_celery_result_backend(self) -> str | None:
        """Return Celery result backend URL, falling back to REDIS_URL if not set."""
        return self.celery_result_backend or self.redis_url


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
