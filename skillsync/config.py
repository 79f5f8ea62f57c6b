"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./skillsync.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    api_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the remote notification API",
        min_length=1,
    )
    api_timeout_seconds: float = Field(
        default=10.0, description="Timeout applied to remote API requests", gt=0
    )
    local_storage_path: str | None = Field(
        default=None,
        description="JSON file backing the durable client storage; memory only when unset",
    )
    local_id_prefix: str = Field(
        default="local-",
        description="Namespace prefix for client generated notification ids",
        min_length=1,
    )
    retry_max_attempts: int = Field(
        default=3, description="Attempts made for a fresh notification send", gt=0
    )
    retry_initial_delay_seconds: float = Field(
        default=1.0, description="Delay before the second attempt, doubled afterwards", ge=0
    )
    pending_retry_max_attempts: int = Field(
        default=2, description="Attempts made when re-driving a pending record", gt=0
    )
    pending_expiry_seconds: float = Field(
        default=24 * 60 * 60,
        description="Age after which pending delivery records are skipped",
        gt=0,
    )
    pending_check_interval_seconds: float = Field(
        default=60.0, description="Interval of the pending queue check", gt=0
    )
    cache_freshness_seconds: float = Field(
        default=300.0, description="Lifetime of a cached notification list", gt=0
    )
    fetch_throttle_seconds: float = Field(
        default=120.0, description="Minimum spacing of unforced refetches", ge=0
    )
    realtime_debounce_seconds: float = Field(
        default=1.0, description="Quiet period that closes a burst of push or bus events", ge=0
    )
    poll_interval_seconds: float = Field(
        default=300.0, description="Polling fallback interval", gt=0
    )
    messaging_poll_interval_seconds: float = Field(
        default=20.0,
        description="Polling fallback interval while the messaging view is active",
        gt=0,
    )
    list_limit: int = Field(
        default=50, description="Maximum notifications returned by the list endpoint", gt=0
    )

    @model_validator(mode="after")
    def _validate_poll_intervals(self) -> "Settings":
        if self.messaging_poll_interval_seconds > self.poll_interval_seconds:
            raise ValueError(
                "MESSAGING_POLL_INTERVAL_SECONDS must not exceed POLL_INTERVAL_SECONDS"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
