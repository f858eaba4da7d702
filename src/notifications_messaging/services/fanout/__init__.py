"""Fan-out of group-targeted records."""

from notifications_messaging.services.fanout.fanout_dispatcher import (
    MAX_BATCH_SIZE,
    FanOutDispatcher,
    FanOutResult,
)

__all__ = ["MAX_BATCH_SIZE", "FanOutDispatcher", "FanOutResult"]
