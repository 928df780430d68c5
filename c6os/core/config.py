"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines the deployment mode and which .env file to load
- Supports: development, testing, staging, production
- Only "production" disables the unauthenticated development bypass
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) populates values from environment variables.
    Static type checkers treat fields as constructor arguments, which is not
    how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_auth_settings() -> "AuthSettings":
    return AuthSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    service_name: str = Field(
        "C6Group.AI OS - SUPERAAI Control System",
        description="Service name reported by the health endpoint",
    )
    version: str = Field(
        "1.0.0",
        description="API version reported by the health and index endpoints",
    )
    host: str = Field(
        "0.0.0.0",
        description="Bind address for the local development server",
    )
    port: int = Field(
        3001,
        description="Port for the local development server",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "https://os.c6group.co.za"],
        description="Origins allowed by CORS (JSON list)",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class AuthSettings(BaseSettings):
    """Token verification configuration.

    Each verifier is enabled only when its settings are present:
    - Cognito verification needs AUTH_COGNITO_USER_POOL_ID
    - Shared-secret verification needs AUTH_JWT_SECRET
    """

    cognito_user_pool_id: str | None = Field(
        None,
        description="Cognito user pool id (e.g., us-east-1_AbCdEfGhI)",
    )
    cognito_client_id: str | None = Field(
        None,
        description="Cognito app client id expected in access tokens",
    )
    cognito_region: str | None = Field(
        None,
        description="AWS region of the user pool (derived from the pool id when unset)",
    )
    cognito_token_use: str = Field(
        "access",
        description="Expected token_use claim for Cognito tokens",
    )
    jwt_secret: str | None = Field(
        None,
        description="Shared secret for locally signed tokens",
    )
    jwt_algorithms: list[str] = Field(
        default_factory=lambda: ["HS256"],
        description="Accepted algorithms for locally signed tokens (JSON list)",
    )
    jwt_audience: str | None = Field(
        None,
        description="Expected aud claim for locally signed tokens (not checked when unset)",
    )
    jwt_issuer: str | None = Field(
        None,
        description="Expected iss claim for locally signed tokens (not checked when unset)",
    )
    verification_timeout_seconds: float = Field(
        5.0,
        description="Upper bound for a single verifier attempt",
        gt=0,
    )
    jwks_cache_ttl_seconds: int = Field(
        3600,
        description="How long a fetched JWKS is reused before refreshing",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Sliding-window rate limit configuration."""

    enabled: bool = Field(
        True,
        description="Enable rate limiting on /api routes",
    )
    window_ms: int = Field(
        900_000,
        description="Default window duration in milliseconds (15 minutes)",
        ge=1,
    )
    max_requests: int = Field(
        100,
        description="Maximum requests per default window (per principal or IP)",
        ge=1,
    )
    strict_window_ms: int = Field(
        60_000,
        description="Window duration for sensitive endpoints in milliseconds",
        ge=1,
    )
    strict_max_requests: int = Field(
        5,
        description="Maximum requests per strict window",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10_485_760, description="Rotate log file after this size (0 disables)")
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field("X-Request-ID", description="Correlation header name")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    auth: AuthSettings = Field(default_factory=_build_auth_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )

    @property
    def is_production(self) -> bool:
        """Whether the deployment mode is production."""
        return self.app_env.strip().lower() == "production"


# Global settings instance - composed from domain-specific settings
settings = Settings()
