"""Application settings and configuration.

This module defines all configuration options for the corrector proxy.
Settings are loaded from environment variables with sensible defaults.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when the runtime configuration is incomplete or invalid."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    The upstream API key has no default; constructing settings without it
    fails validation.
    """

    # Upstream completion API
    openai_api_key: str = Field(alias="OPENAI_API_KEY", min_length=1)
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        alias="OPENAI_BASE_URL",
    )
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_timeout_ms: int = Field(default=15_000, gt=0, alias="OPENAI_TIMEOUT_MS")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8787, alias="PORT")
    proxy_env: str = Field(default="local", alias="PROXY_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Storage location for installation records
    database_url: str = Field(
        default="sqlite:///./data/proxy.sqlite",
        alias="DATABASE_URL",
    )
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Response cache
    cache_ttl_ms: int = Field(default=5 * 60 * 1000, gt=0, alias="CACHE_TTL_MS")
    cache_max_entries: int = Field(default=1000, gt=0, alias="CACHE_MAX_ENTRIES")

    # Per-token limiter applied inside /transform
    token_rate_window_ms: int = Field(default=60_000, gt=0, alias="TOKEN_RATE_WINDOW_MS")
    token_rate_max: int = Field(default=60, gt=0, alias="TOKEN_RATE_MAX")

    # Service-wide limiter keyed by token or caller IP
    global_rate_window_ms: int = Field(default=60_000, gt=0, alias="GLOBAL_RATE_WINDOW_MS")
    global_rate_max: int = Field(default=60, gt=0, alias="GLOBAL_RATE_MAX")

    # Input limits
    max_text_length: int = Field(default=2000, gt=0, alias="MAX_TEXT_LENGTH")

    # Enables the forced-error hook on /transform. Never set in production.
    test_mode: bool = Field(default=False, alias="CORRECTOR_TEST")

    # CORS configuration for the extension origin
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")

    model_config = SettingsConfigDict(
        env_file=".env",
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def openai_timeout_seconds(self) -> float:
        """Return the upstream timeout in seconds."""
        return self.openai_timeout_ms / 1000

    @property
    def is_sqlite(self) -> bool:
        """Return True when installations are stored in SQLite."""
        return self.database_url.startswith("sqlite")


def load_settings(**overrides: Any) -> Settings:
    """Build settings from the environment, applying keyword overrides.

    Raises:
        ConfigurationError: If a required option is missing or a value is invalid.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        fields = sorted(
            {err["loc"][0] for err in exc.errors() if err.get("loc")},
            key=str,
        )
        names = ", ".join(str(name) for name in fields) or "settings"
        raise ConfigurationError(f"Invalid or missing configuration: {names}") from exc
