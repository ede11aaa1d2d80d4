"""Configuration management for Designali Hub.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once when the
first session starts and is immutable afterwards.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DESIGNALI_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "Designali Hub"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"

    # Backend Settings
    backend_url: str = "http://localhost:8000"
    api_prefix: str = "/api/v1"
    api_token: str | None = Field(
        default=None,
        description="Bearer token of the signed-in user for the records API",
    )
    request_timeout_seconds: float = 10.0
    page_size: int = Field(default=100, ge=1, le=100)

    # Realtime Settings
    realtime_path: str = "/api/v1/realtime/ws"
    realtime_handshake_timeout_seconds: float = 5.0

    # Sync Settings
    structural_write_policy: Literal["pessimistic", "optimistic"] = "pessimistic"
    notify_external_inserts: bool = True

    # Search Settings
    search_debounce_ms: int = 300
    search_snippet_length: int = 100

    # Notification Settings
    notification_limit: int = 20
    toast_history_size: int = 50

    # Preferences
    default_dark_mode: bool = False

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    @field_validator("backend_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalise the backend URL so paths can be appended directly."""
        return v.rstrip("/")

    @field_validator("search_debounce_ms")
    @classmethod
    def validate_debounce(cls, v: int) -> int:
        """Reject debounce windows that would fire a search per keystroke."""
        if v <= 0:
            raise ValueError("search_debounce_ms must be positive")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"

    @property
    def records_url(self) -> str:
        """Base URL of the records API."""
        return f"{self.backend_url}{self.api_prefix}/records"

    @property
    def realtime_url(self) -> str:
        """WebSocket URL of the realtime endpoint."""
        url = f"{self.backend_url}{self.realtime_path}"
        if url.startswith("https://"):
            return "wss://" + url[len("https://"):]
        if url.startswith("http://"):
            return "ws://" + url[len("http://"):]
        return url

    @property
    def search_debounce_seconds(self) -> float:
        """Debounce window in seconds."""
        return self.search_debounce_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    This function caches the settings instance to avoid reloading
    configuration on every call.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
