"""Application services: materialization and fan-out."""

from notifications_messaging.services.fanout import FanOutDispatcher, FanOutResult
from notifications_messaging.services.materialization import (
    EventMaterializerService,
    MaterializationResult,
)

__all__ = [
    "EventMaterializerService",
    "FanOutDispatcher",
    "FanOutResult",
    "MaterializationResult",
]
