"""Configuration subpackage."""

from notifications_messaging.config.config import (
    AppSettings,
    FanOutSettings,
    IngestSettings,
    LoggingSettings,
    RecipientApiSettings,
    RetrySettings,
    Settings,
    SubscriptionSettings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "FanOutSettings",
    "IngestSettings",
    "LoggingSettings",
    "RecipientApiSettings",
    "RetrySettings",
    "Settings",
    "SubscriptionSettings",
    "get_settings",
]
