"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
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

# Map environments to their respective .env files (relative to PROJECT_ROOT)
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


DEFAULT_PROTECTED_ENDPOINTS = (
    "/api/auth/student/login,"
    "/api/auth/club/login,"
    "/api/auth/student/register,"
    "/api/auth/club/register"
)


def parse_endpoints(endpoints: str | None) -> frozenset[str]:
    """Parse a comma-separated list of paths into a normalized set.

    Args:
        endpoints: Comma-separated request paths, or None.

    Returns:
        Frozen set of trimmed, lower-cased, non-empty paths.

    Examples:
        >>> sorted(parse_endpoints("/API/Auth/Student/Login, /api/auth/club/login"))
        ['/api/auth/club/login', '/api/auth/student/login']
        >>> parse_endpoints(None)
        frozenset()
    """
    if not endpoints:
        return frozenset()

    return frozenset(
        path.strip().lower() for path in endpoints.split(",") if path.strip()
    )


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    BaseSettings populates fields from environment variables; the factory keeps
    nested construction lazy so env loading above is applied first.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()  # type: ignore[call-arg]


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(
        "INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)",
    )
    format: str = Field(
        "json",
        description="Log format: 'json' for structured logs or 'plain' for human-readable",
    )
    output: str = Field(
        "stdout",
        description="Log destination: 'stdout' or 'file'",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output is 'file' (default logs/app.log)",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
        ge=0,
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable admission limiting on the protected auth endpoints",
    )
    rate_limit_requests: int = Field(
        5,
        description="Maximum admitted requests per window per client and endpoint",
        ge=1,
    )
    rate_limit_window_seconds: float = Field(
        900,
        description="Sliding window size in seconds",
        gt=0,
    )
    rate_limit_register_requests: int = Field(
        10,
        description="Maximum admitted requests per window on registration endpoints",
        ge=1,
    )
    rate_limit_register_window_seconds: float = Field(
        3600,
        description="Sliding window size in seconds on registration endpoints",
        gt=0,
    )
    rate_limit_protected_endpoints: str = Field(
        DEFAULT_PROTECTED_ENDPOINTS,
        description="Comma-separated request paths subject to admission limiting (exact, case-insensitive)",
    )
    rate_limit_sweep_interval_seconds: float = Field(
        60,
        description="How often fully expired limiter keys are swept from memory",
        gt=0,
    )

    trust_forwarded_for: bool = Field(
        True,
        description="Derive the client identifier from X-Forwarded-For when present",
    )
    security_headers_enabled: bool = Field(
        True,
        description="Attach standard security headers to every response",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )

    @property
    def protected_endpoints(self) -> frozenset[str]:
        return parse_endpoints(self.rate_limit_protected_endpoints)


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
