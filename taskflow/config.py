"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"

DEFAULT_EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./taskflow.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        description="Secret key used to verify JWT bearer tokens", min_length=1
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="Number of minutes before access tokens expire",
        gt=0,
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    push_enabled: bool = Field(
        default=True, description="Disable to turn mobile push into a no-op"
    )
    expo_push_url: str = Field(
        default=DEFAULT_EXPO_PUSH_URL,
        description="Endpoint of the Expo push notification service",
    )
    expo_access_token: str | None = Field(
        default=None,
        description="Access token sent to the Expo push service",
    )
    push_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout applied to each request sent to the push provider",
        gt=0,
    )

    worker_poll_interval: float = Field(
        default=1.0,
        description="Initial idle delay in seconds when the queue is empty",
        gt=0,
    )
    worker_max_poll_interval: float = Field(
        default=15.0,
        description="Upper bound for the idle backoff in seconds",
        gt=0,
    )
    worker_lease_timeout_minutes: int = Field(
        default=15,
        description="Minutes after which a PROCESSING job is considered abandoned",
        gt=0,
    )
    worker_max_attempts: int = Field(
        default=3,
        description="Claims allowed before an abandoned job is marked as failed",
        gt=0,
    )
    worker_maintenance_interval: float = Field(
        default=300.0,
        description="Seconds between stale-job reclaim and retention sweeps",
        gt=0,
    )
    worker_embedded: bool = Field(
        default=False,
        description="Run a delivery worker thread inside the API process",
    )

    notification_retention_days: int = Field(
        default=30,
        description="Read notifications older than this are removed by the sweep",
        gt=0,
    )

    @model_validator(mode="after")
    def _validate_poll_bounds(self) -> "Settings":
        if self.worker_max_poll_interval < self.worker_poll_interval:
            raise ValueError(
                "WORKER_MAX_POLL_INTERVAL must be greater than or equal to WORKER_POLL_INTERVAL"
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
