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

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_llm_settings() -> "LLMSettings":
    """Build LLM settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return LLMSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_llm_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_auth_settings() -> "AuthSettings":
    return AuthSettings()  # type: ignore[call-arg]


def _build_database_settings() -> "DatabaseSettings":
    return DatabaseSettings()  # type: ignore[call-arg]


def _build_notion_settings() -> "NotionSettings":
    return NotionSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class LLMSettings(BaseSettings):
    """LLM provider configuration.

    Validation of provider-specific requirements happens in the factory.
    Each endpoint has its own timeout and output token budget because
    large documents and multi-image requests take materially longer.
    """

    provider: str = Field(
        "openai",
        description="LLM provider name (currently: openai)",
    )
    model: str = Field(
        "gpt-4o",
        description="Vision-capable model name (e.g., gpt-4o, gpt-4.1)",
    )
    api_key: str | None = Field(
        None,
        description="API key for the hosted model provider",
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint (OpenAI-compatible gateways)",
    )
    timeout_seconds: float = Field(
        60.0,
        description="Default request timeout in seconds",
    )

    strategy_timeout_seconds: float = Field(300.0, description="Timeout for strategy document analysis")
    chart_timeout_seconds: float = Field(60.0, description="Timeout for chart analysis")
    chat_timeout_seconds: float = Field(60.0, description="Timeout for chat replies")
    title_timeout_seconds: float = Field(10.0, description="Timeout for conversation title generation")

    strategy_max_tokens: int = Field(4096, ge=1)
    chart_max_tokens: int = Field(4096, ge=1)
    chat_max_tokens: int = Field(2048, ge=1)
    title_max_tokens: int = Field(100, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    max_upload_size_mb: int = Field(
        10,
        description="Maximum file upload size in megabytes",
    )
    max_pdf_pages: int = Field(
        200,
        description="Maximum number of pages accepted in a strategy PDF",
    )
    file_extraction_timeout_seconds: float = Field(
        20.0,
        description="Timeout for local PDF text extraction",
    )
    max_strategy_chars: int = Field(
        200000,
        description="Maximum strategy text length kept after extraction",
    )
    frontend_url: str = Field(
        "",
        description="Base URL of the web frontend used for OAuth redirects",
    )
    tradingview_allowed_domains: str = Field(
        "tradingview.com",
        description="Comma-separated list of domains accepted for snapshot links",
    )
    http_timeout_seconds: float = Field(
        30.0,
        description="Timeout for outbound HTTP calls (TradingView)",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client rate limiting on sensitive endpoints",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    rate_limit_sweep_interval_seconds: int = Field(
        3600,
        description="How often expired rate limit records are swept from memory",
        ge=1,
    )
    rate_limit_login_requests: int = Field(5, ge=1)
    rate_limit_login_window_seconds: int = Field(15 * 60, ge=1)
    rate_limit_register_requests: int = Field(3, ge=1)
    rate_limit_register_window_seconds: int = Field(60 * 60, ge=1)
    rate_limit_analyze_chart_requests: int = Field(10, ge=1)
    rate_limit_analyze_chart_window_seconds: int = Field(60, ge=1)
    rate_limit_chart_image_requests: int = Field(20, ge=1)
    rate_limit_chart_image_window_seconds: int = Field(60, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class AuthSettings(BaseSettings):
    """Bearer token and password hashing configuration."""

    jwt_secret: str = Field(
        ...,
        description="Shared secret used to sign bearer tokens (required)",
        min_length=1,
    )
    jwt_algorithm: str = Field("HS256")
    token_ttl_hours: int = Field(
        24 * 7,
        description="Bearer token lifetime in hours",
        ge=1,
    )
    oauth_state_ttl_minutes: int = Field(
        10,
        description="Lifetime of the signed Notion OAuth state parameter",
        ge=1,
    )
    bcrypt_rounds: int = Field(10, ge=4, le=16)

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
    )


class DatabaseSettings(BaseSettings):
    """Document store configuration."""

    backend: str = Field(
        "memory",
        description="Storage backend: 'memory' or 'mongo'",
    )
    uri: str = Field(
        "mongodb://localhost:27017",
        description="MongoDB connection string",
    )
    name: str = Field(
        "trading_assistant",
        description="MongoDB database name",
    )

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        case_sensitive=False,
    )


class NotionSettings(BaseSettings):
    """Notion OAuth integration configuration."""

    client_id: str | None = Field(None)
    client_secret: str | None = Field(None)
    redirect_uri: str | None = Field(None)
    api_base_url: str = Field("https://api.notion.com/v1")
    api_version: str = Field("2022-06-28")
    timeout_seconds: float = Field(30.0)

    model_config = SettingsConfigDict(
        env_prefix="NOTION_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO")
    format: str = Field(
        "json",
        description="Log format: 'json' or 'plain'",
    )
    output: str = Field(
        "stdout",
        description="Log destination: 'stdout' or 'file'",
    )
    file_path: str | None = Field(None)
    max_bytes: int | None = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (file output only)",
    )
    backup_count: int = Field(5)
    request_id_header: str = Field("X-Request-ID")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing
    (AUTH_JWT_SECRET in particular).
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=_build_llm_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    auth: AuthSettings = Field(default_factory=_build_auth_settings)
    database: DatabaseSettings = Field(default_factory=_build_database_settings)
    notion: NotionSettings = Field(default_factory=_build_notion_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
