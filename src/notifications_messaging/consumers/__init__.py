"""Queue consumers."""

from notifications_messaging.consumers.event_consumer import EventConsumer

__all__ = ["EventConsumer"]
