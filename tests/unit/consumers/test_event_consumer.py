# -*- coding: utf-8 -*-
"""Unit tests for EventConsumer."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, Mock

from notifications_messaging.consumers import EventConsumer
from notifications_messaging.exceptions import ConfigError, EventMaterializationError, RecordStoreError
from notifications_messaging.models.event import InboundEvent
from notifications_messaging.persistence.repositories.in_memory import InMemoryRecordRepository
from notifications_messaging.queue import InMemoryQueue, QueueMessage
from notifications_messaging.services.materialization import EventMaterializerService
from notifications_messaging.subscriptions import SubscriptionRegistry
from notifications_messaging.utils.retry import RetryPolicy


def _consumer(queue: Any, materializer: Any, max_deliveries: int = 3) -> tuple[EventConsumer, Mock]:
    logger = Mock()
    consumer = EventConsumer(
        queue,
        materializer,
        max_deliveries=max_deliveries,
        get_logger=lambda _name: logger,
    )
    return consumer, logger


def _retryable_failure(event_id: str = "evt-1") -> EventMaterializationError:
    return EventMaterializationError(event_id, {"lead-created": RecordStoreError("throttled")})


async def test_handle_materializes_event(event_factory: Callable[..., InboundEvent]) -> None:
    materializer = Mock()
    materializer.process = AsyncMock()
    consumer, _ = _consumer(InMemoryQueue(), materializer)
    event = event_factory()

    await consumer.handle(QueueMessage.create(event))

    materializer.process.assert_awaited_once_with(event)


async def test_retryable_failure_is_redelivered(event_factory: Callable[..., InboundEvent]) -> None:
    queue: InMemoryQueue[QueueMessage[InboundEvent]] = InMemoryQueue()
    materializer = Mock()
    materializer.process = AsyncMock(side_effect=_retryable_failure())
    consumer, logger = _consumer(queue, materializer)
    message = QueueMessage.create(event_factory())

    await consumer.handle(message)

    redelivered = queue.get_nowait()
    assert redelivered.id == message.id
    assert redelivered.delivery_attempt == 2
    assert logger.warning.call_args.args[0] == "event_redelivery_scheduled"


async def test_retryable_failure_dropped_after_max_deliveries(
    event_factory: Callable[..., InboundEvent],
) -> None:
    queue: InMemoryQueue[QueueMessage[InboundEvent]] = InMemoryQueue()
    materializer = Mock()
    materializer.process = AsyncMock(side_effect=_retryable_failure())
    consumer, logger = _consumer(queue, materializer, max_deliveries=2)
    message = QueueMessage.create(event_factory()).redelivered()

    await consumer.handle(message)

    assert queue.qsize() == 0
    assert logger.error.call_args.args[0] == "event_dropped"


async def test_non_retryable_failure_is_dropped(event_factory: Callable[..., InboundEvent]) -> None:
    queue: InMemoryQueue[QueueMessage[InboundEvent]] = InMemoryQueue()
    materializer = Mock()
    materializer.process = AsyncMock(side_effect=ConfigError("bad template"))
    consumer, logger = _consumer(queue, materializer)

    await consumer.handle(QueueMessage.create(event_factory()))

    assert queue.qsize() == 0
    assert logger.error.call_args.kwargs["retryable"] is False


async def test_redelivery_into_full_queue_is_logged(event_factory: Callable[..., InboundEvent]) -> None:
    queue: InMemoryQueue[QueueMessage[InboundEvent]] = InMemoryQueue(maxsize=1)
    queue.put_nowait(QueueMessage.create(event_factory(id="other")))
    materializer = Mock()
    materializer.process = AsyncMock(side_effect=_retryable_failure())
    consumer, logger = _consumer(queue, materializer)

    await consumer.handle(QueueMessage.create(event_factory()))

    assert queue.qsize() == 1
    assert logger.error.call_args.args[0] == "event_redelivery_failed"


async def test_consume_loop_end_to_end(
    registry: SubscriptionRegistry,
    record_repo: InMemoryRecordRepository,
    event_factory: Callable[..., InboundEvent],
    fast_retry: RetryPolicy,
) -> None:
    queue: InMemoryQueue[QueueMessage[InboundEvent]] = InMemoryQueue()
    materializer = EventMaterializerService(registry, record_repo, retry_policy=fast_retry)
    consumer, _ = _consumer(queue, materializer)

    async with consumer:
        await queue.put(QueueMessage.create(event_factory(id="evt-1")))
        await queue.put(QueueMessage.create(event_factory(id="evt-2")))
        await asyncio.wait_for(queue.join(), timeout=2)

    assert len(record_repo) == 2


async def test_loop_exits_on_queue_shutdown(event_factory: Callable[..., InboundEvent]) -> None:
    queue: InMemoryQueue[QueueMessage[InboundEvent]] = InMemoryQueue()
    materializer = Mock()
    materializer.process = AsyncMock()
    consumer, logger = _consumer(queue, materializer)
    await consumer.start()
    task = consumer._worker_task
    assert task is not None

    await queue.put(QueueMessage.create(event_factory()))
    await asyncio.wait_for(queue.join(), timeout=2)
    queue.shutdown()
    await asyncio.wait_for(task, timeout=2)

    materializer.process.assert_awaited_once()
    assert logger.info.call_args.args[0] == "event_consumer_stopped"
    await consumer.stop()
