# -*- coding: utf-8 -*-
"""
Entry point for the notifications-messaging worker.

Orchestrates: logging, settings, container, subscription registry (cold start),
fan-out dispatcher, event consumer, optional event replay, shutdown (SIGINT or
CancelledError).
Events flow: queue -> consumer -> EventMaterializerService -> record store ->
RecordInsertedEvent -> FanOutDispatcher -> availability events.

Run with: python -m notifications_messaging.main
"""
from __future__ import annotations

import asyncio
import json
import signal
from pathlib import Path
from typing import Any

import structlog

from notifications_messaging.DI import Container
from notifications_messaging.config import get_settings
from notifications_messaging.exceptions import (
    ConfigError,
    MissingRequiredConfigError,
    QueueShutdown,
)
from notifications_messaging.logging.config import configure_logging
from notifications_messaging.models.event import InboundEvent
from notifications_messaging.queue import IAsyncQueue, QueueMessage


def _setup_sigint(shutdown_event: asyncio.Event) -> None:
    try:
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(
            signal.SIGINT,
            lambda: shutdown_event.set(),
        )
    except NotImplementedError:
        pass  # Windows has no add_signal_handler


async def replay_events_file(
    path: str | Path,
    queue: IAsyncQueue[QueueMessage[InboundEvent]],
    logger: Any,
) -> int:
    """Enqueue every event envelope of a JSON-lines file. Invalid lines are logged and skipped.

    Returns:
        Number of events enqueued.
    """
    enqueued = 0
    with Path(path).open(encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                event = InboundEvent.from_envelope(json.loads(line))
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning("main_replay_invalid_line", line=line_no, error=str(e))
                continue
            try:
                await queue.put(
                    QueueMessage.create(event, metadata={"origin": "events_file", "line": line_no})
                )
            except QueueShutdown:
                break
            enqueued += 1
    logger.info("main_replay_enqueued", path=str(path), events=enqueued)
    return enqueued


async def run() -> None:
    configure_logging()
    logger = structlog.get_logger("main")
    settings = get_settings()

    container = Container()
    try:
        registry = container.subscription_registry()
    except (ConfigError, MissingRequiredConfigError) as e:
        logger.error("main_invalid_subscriptions", error=str(e))
        raise
    logger.info("main_subscriptions_loaded", subscriptions=registry.names)

    dispatcher = container.fanout_dispatcher()
    consumer = container.event_consumer()
    event_queue = container.event_queue()
    shutdown_event = asyncio.Event()
    _setup_sigint(shutdown_event)

    await dispatcher.start()
    await consumer.start()
    try:
        if settings.ingest.events_file:
            await replay_events_file(settings.ingest.events_file, event_queue, logger)
        logger.info("main_worker_started")
        await shutdown_event.wait()
    finally:
        event_queue.shutdown()
        await event_queue.join()
        await consumer.stop()
        await dispatcher.stop()
        if settings.recipient_api.enabled:
            await container.http_client().aclose()
        logger.info("main_shutdown_complete")


def main() -> None:
    asyncio.run(run())


__all__ = ["main", "replay_events_file", "run"]

if __name__ == "__main__":
    main()
