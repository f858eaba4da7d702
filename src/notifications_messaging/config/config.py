# -*- coding: utf-8 -*-
"""Configuration loaded from environment via Pydantic Settings.

Nested env vars use <section>__<key>, e.g. LOGGING__CONSOLE_LEVEL,
SUBSCRIPTIONS__CONFIG_PATH, FANOUT__BATCH_SIZE.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """General application configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    app_name: str = "notifications-messaging"
    service_name: Optional[str] = None
    service_version: Optional[str] = None
    environment: Literal["development", "test", "production"] = "development"


class LoggingSettings(BaseSettings):
    """Structured logging configuration for structlog/stdlib/Logfire."""

    model_config = SettingsConfigDict(extra="ignore")

    console_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    logfire_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    log_to_console: bool = True
    log_to_file: bool = False
    log_file_path: str = "logs/notifications_messaging.log"
    # TimedRotatingFileHandler: when to rotate (S/M/H/D/W0–W6/midnight), interval, backups to keep
    log_file_when: Literal[
        "S", "M", "H", "D", "W0", "W1", "W2", "W3", "W4", "W5", "W6", "midnight"
    ] = "midnight"
    log_file_interval: int = 1
    log_file_backup_count: int = 30
    log_file_utc: bool = True

    # JSONRenderer if True, ConsoleRenderer if False
    json_format: bool = False

    logfire_enabled: bool = False
    logfire_token: Optional[str] = None


class SubscriptionSettings(BaseSettings):
    """Where the subscription document is read from at cold start."""

    model_config = SettingsConfigDict(extra="ignore")

    config_path: Optional[str] = Field(
        default=None,
        description="Path to a YAML or JSON subscription file.",
    )
    config_json: Optional[str] = Field(
        default=None,
        description="Inline JSON subscription document (takes precedence over config_path).",
    )


class IngestSettings(BaseSettings):
    """Inbound transport: queue capacity and redelivery."""

    model_config = SettingsConfigDict(extra="ignore")

    queue_size: int = Field(
        default=1000,
        ge=1,
        le=100_000,
        description="Inbound event queue capacity.",
    )
    max_deliveries: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Deliveries of one event before a retryable failure is dropped.",
    )
    events_file: Optional[str] = Field(
        default=None,
        description="Optional JSON-lines file of event envelopes replayed at startup.",
    )


class FanOutSettings(BaseSettings):
    """Availability event publishing."""

    model_config = SettingsConfigDict(extra="ignore")

    batch_size: int = Field(
        default=10,
        ge=1,
        le=10,
        description="Availability events per publish call.",
    )
    event_source: str = Field(
        default="notifications-messaging",
        description="Source attribute stamped on availability events.",
    )


class RetrySettings(BaseSettings):
    """Backoff for store writes, recipient lookups and publish batches."""

    model_config = SettingsConfigDict(extra="ignore")

    max_attempts: int = Field(default=3, ge=1, le=10)
    backoff_base_seconds: float = Field(default=0.25, ge=0.0, le=30.0)
    backoff_max_seconds: float = Field(default=4.0, ge=0.0, le=120.0)
    timeout_seconds: float = Field(
        default=10.0,
        ge=0.1,
        le=120.0,
        description="Per-attempt timeout for external calls.",
    )


class RecipientApiSettings(BaseSettings):
    """HTTP user directory used for recipient resolution (RECIPIENT_API__*)."""

    model_config = SettingsConfigDict(extra="ignore")

    enabled: bool = False
    base_url: str = Field(
        default="http://localhost:8080",
        description="User directory API base URL.",
    )
    timeout_seconds: float = Field(
        default=5.0,
        ge=0.5,
        le=120.0,
        description="HTTP request timeout in seconds.",
    )
    max_retries: int = Field(
        default=2,
        ge=1,
        le=20,
        description="Maximum number of attempts per HTTP request.",
    )


class Settings(BaseSettings):
    """Root application configuration.

    Groups all sub-configurations so the rest of the code does not
    read environment variables directly.
    """

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    app: AppSettings = Field(default_factory=AppSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    subscriptions: SubscriptionSettings = Field(default_factory=SubscriptionSettings)
    ingest: IngestSettings = Field(default_factory=IngestSettings)
    fanout: FanOutSettings = Field(default_factory=FanOutSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    recipient_api: RecipientApiSettings = Field(default_factory=RecipientApiSettings)

    @classmethod
    def from_env(cls, **overrides: Any) -> Settings:
        """Build settings from environment (and .env), with optional overrides.

        e.g. ``from_env(fanout={"batch_size": 5})``.
        """
        return cls(**overrides)


@lru_cache
def get_settings() -> Settings:
    """Return a single cached instance of Settings."""
    return Settings()
