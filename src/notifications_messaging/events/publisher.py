"""Outbound publishing of availability events."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from notifications_messaging.events.availability import AvailabilityEvent

if TYPE_CHECKING:
    from bubus import EventBus  # type: ignore[import-untyped]


class IEventPublisher(ABC):
    """Publishes availability events to the outbound bus."""

    @abstractmethod
    async def publish(self, batch: Sequence[AvailabilityEvent]) -> None:
        """Publish a batch of at most 10 events.

        Raises:
            Exception: If the batch could not be accepted. Callers retry the whole batch.
        """
        ...


class BusEventPublisher(IEventPublisher):
    """Dispatches availability events on the application bubus bus.

    publish() returns once every event of the batch has been processed by the bus
    and raises the first handler error it finds.
    """

    def __init__(
        self,
        event_bus: Any,
        *,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: str | None = None,
    ) -> None:
        self._event_bus: "EventBus" = event_bus
        self._logger = get_logger(logger_name or self.__class__.__name__)

    async def publish(self, batch: Sequence[AvailabilityEvent]) -> None:
        dispatched = [self._event_bus.dispatch(event) for event in batch]
        for event in dispatched:
            await event
            for result in event.event_results.values():
                if result.error is not None:
                    self._logger.warning(
                        "availability_handler_failed",
                        availability_id=event.availability_id,
                        handler=result.handler_name,
                        error_type=type(result.error).__name__,
                    )
                    raise result.error
        self._logger.debug("availability_batch_published", size=len(batch))
