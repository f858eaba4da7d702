"""Exceptions subpackage."""

from notifications_messaging.exceptions.exceptions import (
    ConfigError,
    EventMaterializationError,
    ExpressionEvaluationError,
    MissingRequiredConfigError,
    MissingTargetFieldError,
    NotificationsMessagingError,
    PublishFailure,
    RateLimitError,
    RecipientResolutionFailure,
    RecordStoreError,
    TemplateEvaluationError,
    UpstreamAPIError,
)
from notifications_messaging.exceptions.queue_exceptions import (
    QueueEmpty,
    QueueError,
    QueueFull,
    QueueShutdown,
)

__all__ = [
    "ConfigError",
    "EventMaterializationError",
    "ExpressionEvaluationError",
    "MissingRequiredConfigError",
    "MissingTargetFieldError",
    "NotificationsMessagingError",
    "PublishFailure",
    "RateLimitError",
    "RecipientResolutionFailure",
    "RecordStoreError",
    "TemplateEvaluationError",
    "UpstreamAPIError",
    "QueueEmpty",
    "QueueError",
    "QueueFull",
    "QueueShutdown",
]
