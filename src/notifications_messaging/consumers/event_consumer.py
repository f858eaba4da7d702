# -*- coding: utf-8 -*-
"""Consumer that drains inbound events from the queue and materializes them.

Uses _running (instance) for start/stop state only. queue.get() blocks until a
message arrives or the queue is shut down, so stop is achieved via
queue.shutdown() (QueueShutdown) or task cancel (CancelledError).
"""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import Any, Callable, Optional, Type

import structlog
from structlog.contextvars import bound_contextvars

from notifications_messaging.exceptions import QueueFull, QueueShutdown
from notifications_messaging.models.event import InboundEvent
from notifications_messaging.queue import IAsyncQueue, QueueMessage
from notifications_messaging.services.materialization import EventMaterializerService


class EventConsumer:
    """Consumes inbound event messages and delegates to EventMaterializerService.

    A failure whose ``retryable`` flag is set is re-enqueued with the next
    delivery attempt until ``max_deliveries`` is reached; anything else is
    dropped with an error log.
    """

    def __init__(
        self,
        queue: IAsyncQueue[QueueMessage[InboundEvent]],
        materializer: EventMaterializerService,
        *,
        max_deliveries: int = 3,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: Optional[str] = None,
    ) -> None:
        """Initialize the consumer.

        Args:
            queue: Inbound event queue.
            materializer: Service materializing each event.
            max_deliveries: Deliveries of one message before a retryable failure is dropped.
            get_logger: Logger factory (injected).
            logger_name: Optional logger name (defaults to class name).
        """
        self._queue = queue
        self._materializer = materializer
        self._max_deliveries = max(1, max_deliveries)
        self._logger = get_logger(logger_name or self.__class__.__name__)
        self._running = False
        self._lock = asyncio.Lock()
        self._worker_task: Optional[asyncio.Task[None]] = None

    async def __aenter__(self) -> EventConsumer:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> bool:
        await self.stop()
        return False

    async def start(self) -> None:
        """Start the consumer in a background task. Idempotent."""
        async with self._lock:
            if self._running:
                return
            self._running = True
            self._worker_task = asyncio.create_task(self._consume_loop())

    async def stop(self) -> None:
        """Stop the consumer: cancel the task and wait for it to finish. Idempotent."""
        async with self._lock:
            if not self._running:
                return
            self._running = False
            task = self._worker_task
            self._worker_task = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def handle(self, message: QueueMessage[InboundEvent]) -> None:
        """Materialize one message, re-enqueueing it on a retryable failure."""
        event = message.payload
        with bound_contextvars(
            message_id=str(message.id),
            event_id=event.id,
            delivery_attempt=message.delivery_attempt,
        ):
            try:
                await self._materializer.process(event)
            except Exception as e:
                retryable = bool(getattr(e, "retryable", True))
                if retryable and message.delivery_attempt < self._max_deliveries:
                    self._logger.warning(
                        "event_redelivery_scheduled",
                        error_type=type(e).__name__,
                        error_message=str(e),
                    )
                    self._requeue(message.redelivered())
                    return
                self._logger.error(
                    "event_dropped",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    retryable=retryable,
                    max_deliveries=self._max_deliveries,
                )

    def _requeue(self, message: QueueMessage[InboundEvent]) -> None:
        try:
            self._queue.put_nowait(message)
        except (QueueFull, QueueShutdown) as e:
            self._logger.error(
                "event_redelivery_failed",
                reason=type(e).__name__,
                message_id=str(message.id),
            )

    async def _consume_loop(self) -> None:
        """Inner loop: get message, handle, task_done. Exits on QueueShutdown or cancel."""
        self._logger.debug("event_consumer_started")
        try:
            while True:
                message = await self._queue.get()
                try:
                    await self.handle(message)
                finally:
                    self._queue.task_done()
        except QueueShutdown:
            self._logger.info("event_consumer_stopped", reason="queue_shutdown")
        except asyncio.CancelledError:
            self._logger.debug("event_consumer_cancelled")
            raise
        finally:
            async with self._lock:
                self._running = False
                self._worker_task = None
