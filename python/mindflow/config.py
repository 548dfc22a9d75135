"""Application settings loaded from environment variables.

Environment Configuration:
    MINDFLOW_ENV: Deployment environment (local | test | staging | prod)
    HOST / PORT: Listening address for the API process (default 0.0.0.0:3000)
    DATABASE_URL: PostgreSQL connection string (required)

Auth Configuration (required in all environments):
    SUPABASE_JWKS_URL: Full URL to Supabase JWKS endpoint
    SUPABASE_ISSUER: Expected JWT issuer (trailing slash stripped)
    SUPABASE_AUDIENCES: Comma-separated list of allowed audiences

Auth Provider (required in staging/prod):
    SUPABASE_URL: Supabase project URL, used for the /auth/v1 proxy
    SUPABASE_ANON_KEY: Public anon key sent as `apikey` to the auth API

Rate Limiting:
    REDIS_URL: Optional Redis connection string for a shared limiter
    RATE_LIMIT_REQUESTS / RATE_LIMIT_WINDOW_S: Budget per client per rolling window

Note: Without SUPABASE_URL/SUPABASE_ANON_KEY, local and test environments
fall back to an in-memory auth provider.
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


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
    - SUPABASE_JWKS_URL, SUPABASE_ISSUER, SUPABASE_AUDIENCES are required in all environments
    - SUPABASE_URL and SUPABASE_ANON_KEY are required in staging and prod only
    """

    mindflow_env: Environment = Field(default=Environment.LOCAL, alias="MINDFLOW_ENV")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]

    # Supabase token verification (required in all environments)
    supabase_jwks_url: str | None = Field(default=None, alias="SUPABASE_JWKS_URL")
    supabase_issuer: str | None = Field(default=None, alias="SUPABASE_ISSUER")
    supabase_audiences: str | None = Field(default=None, alias="SUPABASE_AUDIENCES")

    # Supabase auth API (signup/login/logout/recover proxy)
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_anon_key: str | None = Field(default=None, alias="SUPABASE_ANON_KEY")
    password_reset_redirect_url: str | None = Field(
        default=None, alias="PASSWORD_RESET_REDIRECT_URL"
    )

    # External AI provider, consumed by the insight generator
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")

    # Rate limiting
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    rate_limit_requests: int = Field(default=120, ge=1, alias="RATE_LIMIT_REQUESTS")
    rate_limit_window_s: int = Field(default=60, ge=1, alias="RATE_LIMIT_WINDOW_S")

    # HTTP surface
    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")
    max_body_bytes: int = Field(default=1024 * 1024, ge=1, alias="MAX_BODY_BYTES")  # 1 MiB

    log_format: str = Field(default="json", alias="LOG_FORMAT")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure required settings are set for the current environment."""
        missing_auth = []
        if not self.supabase_jwks_url:
            missing_auth.append("SUPABASE_JWKS_URL")
        if not self.supabase_issuer:
            missing_auth.append("SUPABASE_ISSUER")
        if not self.supabase_audiences:
            missing_auth.append("SUPABASE_AUDIENCES")

        if missing_auth:
            raise ValueError(
                f"Missing required Supabase auth settings: {', '.join(missing_auth)}. "
                "Start Supabase local and export its settings, or set these environment variables."
            )

        if self.mindflow_env in (Environment.STAGING, Environment.PROD):
            missing_provider = []
            if not self.supabase_url:
                missing_provider.append("SUPABASE_URL")
            if not self.supabase_anon_key:
                missing_provider.append("SUPABASE_ANON_KEY")
            if missing_provider:
                raise ValueError(
                    f"{', '.join(missing_provider)} required for "
                    f"MINDFLOW_ENV={self.mindflow_env.value}"
                )

        if self.log_format not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")

        return self

    @property
    def is_production_like(self) -> bool:
        """Whether this deployment serves real users."""
        return self.mindflow_env in (Environment.STAGING, Environment.PROD)

    @property
    def audience_list(self) -> list[str]:
        """Parse comma-separated audiences into a list."""
        if self.supabase_audiences:
            return [a.strip() for a in self.supabase_audiences.split(",") if a.strip()]
        return []

    @property
    def normalized_issuer(self) -> str | None:
        """Return issuer with trailing slash stripped."""
        if self.supabase_issuer:
            return self.supabase_issuer.rstrip("/")
        return None

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins:
            return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return []

    @property
    def auth_provider_configured(self) -> bool:
        """Whether the real Supabase auth API is configured."""
        return bool(self.supabase_url and self.supabase_anon_key)


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
