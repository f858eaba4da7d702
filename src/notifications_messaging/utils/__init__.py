"""Utility modules."""

from notifications_messaging.utils.identifiers import availability_id, record_id
from notifications_messaging.utils.retry import RetryPolicy, retry_async
from notifications_messaging.utils.target_key import (
    BROADCAST_KEY,
    build_target_key,
    parse_target_key,
    target_key_for,
)

__all__ = [
    "BROADCAST_KEY",
    "RetryPolicy",
    "availability_id",
    "build_target_key",
    "parse_target_key",
    "record_id",
    "retry_async",
    "target_key_for",
]
