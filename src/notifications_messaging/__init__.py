"""Notifications and messaging: event-to-record materialization and fan-out."""

from notifications_messaging.config import get_settings
from notifications_messaging.DI import Container
from notifications_messaging.services import EventMaterializerService, FanOutDispatcher
from notifications_messaging.subscriptions import SubscriptionRegistry

__version__ = "0.1.0"
__all__ = [
    "Container",
    "EventMaterializerService",
    "FanOutDispatcher",
    "SubscriptionRegistry",
    "get_settings",
]
