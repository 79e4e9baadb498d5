"""
Configuration management via environment variables.

This module loads configuration from a .env file using python-dotenv.
All configuration values are accessed through the Settings class.

Secrets (Gemini key, Supabase JWT secret, cron secret) only ever come
from the environment, never from code.
"""
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Load .env file from project root
# This must happen before accessing os.environ
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(env_path)


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Application identifier for logging
        app_env: Environment name (development, staging, production)
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        database_url: SQLAlchemy connection string (Supabase Postgres in production)
        gemini_api_key: API key for Google Gemini; empty disables AI features
        supabase_jwt_secret: Secret used to verify Supabase access tokens
        cron_secret: Bearer token expected on /cron endpoints
        app_url: Public URL of the web app (used in notification text)
        llm_temperature: LLM creativity (0.0 = deterministic, 1.0 = creative)
        llm_max_tokens: Maximum response length
        llm_retry_delay_seconds: Pause between model attempts in a tier
        fetch_timeout_seconds: Timeout for fetching job posting pages
        rate_limit_enabled: Toggle the in-memory rate limiter
        enable_audit_logging: Toggle the request audit middleware
    """
    # Application settings
    app_name: str
    app_env: str
    log_level: str
    app_url: str

    # Database settings
    database_url: str

    # Auth settings
    supabase_jwt_secret: str
    cron_secret: str

    # LLM settings
    gemini_api_key: str
    llm_temperature: float
    llm_max_tokens: int
    llm_retry_delay_seconds: float

    # Safety settings
    fetch_timeout_seconds: int
    rate_limit_enabled: bool
    enable_audit_logging: bool

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env.lower() == "development"

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"

    @property
    def ai_enabled(self) -> bool:
        """True when a Gemini API key is configured."""
        return bool(self.gemini_api_key)


def _get_env(key: str, default: Optional[str] = None) -> str:
    """
    Get environment variable with optional default.

    Raises:
        ValueError: If required variable is not set and no default provided
    """
    value = os.environ.get(key, default)
    if value is None:
        raise ValueError(
            f"Required environment variable '{key}' is not set. "
            f"Please check your .env file."
        )
    return value


def _get_bool(key: str, default: str) -> bool:
    return _get_env(key, default).strip().lower() in ("1", "true", "yes")


def _build_database_url() -> str:
    """
    Resolve the database URL.

    Priority:
    1. DATABASE_URL (Supabase connection string)
    2. Components (DB_HOST, DB_USER, ...) for a local Postgres
    """
    database_url = os.environ.get("DATABASE_URL")

    if not database_url:
        host = _get_env("DB_HOST", "localhost")
        port = _get_env("DB_PORT", "5432")
        user = _get_env("DB_USER", "postgres")
        password = _get_env("DB_PASSWORD", "postgres")
        name = _get_env("DB_NAME", "applyos")
        database_url = f"postgresql://{user}:{password}@{host}:{port}/{name}"

    # Supabase hands out postgres:// URLs, SQLAlchemy wants postgresql://
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    return database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are read once; call get_settings.cache_clear() to reload
    them (tests do this after changing the environment).

    Returns:
        Settings instance with all configuration values
    """
    return Settings(
        # Application
        app_name=_get_env("APP_NAME", "ApplyOS"),
        app_env=_get_env("APP_ENV", "development"),
        log_level=_get_env("LOG_LEVEL", "INFO"),
        app_url=_get_env("APP_URL", "http://localhost:3000"),

        # Database
        database_url=_build_database_url(),

        # Auth
        supabase_jwt_secret=_get_env("SUPABASE_JWT_SECRET", ""),
        cron_secret=_get_env("CRON_SECRET", ""),

        # LLM
        gemini_api_key=_get_env("GEMINI_API_KEY", ""),
        llm_temperature=float(_get_env("LLM_TEMPERATURE", "0.7")),
        llm_max_tokens=int(_get_env("LLM_MAX_TOKENS", "2048")),
        llm_retry_delay_seconds=float(_get_env("LLM_RETRY_DELAY_SECONDS", "1")),

        # Safety
        fetch_timeout_seconds=int(_get_env("FETCH_TIMEOUT_SECONDS", "10")),
        rate_limit_enabled=_get_bool("RATE_LIMIT_ENABLED", "true"),
        enable_audit_logging=_get_bool("ENABLE_AUDIT_LOGGING", "true"),
    )
