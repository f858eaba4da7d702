# -*- coding: utf-8 -*-
"""Event bus, change notifications and availability events."""

from notifications_messaging.events.availability import AvailabilityEvent
from notifications_messaging.events.bus import get_event_bus, set_event_bus
from notifications_messaging.events.publisher import BusEventPublisher, IEventPublisher
from notifications_messaging.events.records import RecordInsertedEvent

__all__ = [
    "AvailabilityEvent",
    "BusEventPublisher",
    "IEventPublisher",
    "RecordInsertedEvent",
    "get_event_bus",
    "set_event_bus",
]
