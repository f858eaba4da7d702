"""Fan-out of group-targeted records into per-recipient availability events.

Lazy fan-out: no per-recipient rows are written. For each inserted record
the dispatcher resolves recipients and publishes one AvailabilityEvent per
recipient, in batches of at most ten.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, assert_never
from uuid import UUID

import structlog
from structlog.contextvars import bound_contextvars

from notifications_messaging.events.availability import AvailabilityEvent
from notifications_messaging.events.publisher import IEventPublisher
from notifications_messaging.events.records import RecordInsertedEvent
from notifications_messaging.exceptions import PublishFailure, RecipientResolutionFailure
from notifications_messaging.models.record import (
    TARGET_CLIENT_IDS_KEY,
    TARGET_USER_IDS_KEY,
    Record,
)
from notifications_messaging.models.subscription import RecordKind
from notifications_messaging.models.target import (
    BroadcastTarget,
    ChannelTarget,
    ClientTarget,
    UserTarget,
)
from notifications_messaging.persistence.repositories.interfaces.recipient_repository import (
    IRecipientResolver,
)
from notifications_messaging.utils.identifiers import availability_id
from notifications_messaging.utils.retry import RetryPolicy, retry_async

if TYPE_CHECKING:
    from bubus import EventBus  # type: ignore[import-untyped]

MAX_BATCH_SIZE = 10

type Recipient = tuple[str, str | None]
"""(user_id, client_id); client_id is None for channel participants."""


@dataclass(frozen=True)
class FanOutResult:
    """Outcome of fanning out one record."""

    record_id: UUID
    target_key: str
    recipients: int = 0
    published: int = 0
    failed: int = 0
    error: Exception | None = None
    """Set by dispatch_many when the record's fan-out raised."""

    @property
    def success(self) -> bool:
        return self.error is None and self.failed == 0


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _narrowing(metadata: Any, key: str) -> set[str] | None:
    """Ids from a non-empty scoping list in record metadata, else None (no narrowing)."""
    values = metadata.get(key) if metadata else None
    if not values or isinstance(values, str):
        return None
    return {str(v) for v in values}


def _dedupe(recipients: Iterable[Recipient]) -> list[Recipient]:
    seen: set[str] = set()
    unique: list[Recipient] = []
    for user_id, client_id in recipients:
        if user_id in seen:
            continue
        seen.add(user_id)
        unique.append((user_id, client_id))
    return unique


class FanOutDispatcher:
    """Routes inserted records by target type and publishes availability events.

    - user: already addressed, nothing is published.
    - client: every user of the client (narrowed by ``metadata.targetUserIds``).
    - broadcast: every user (narrowed by ``metadata.targetClientIds``).
    - channel: every active participant of the channel.
    """

    def __init__(
        self,
        recipient_resolver: IRecipientResolver,
        publisher: IEventPublisher,
        event_bus: Any = None,
        *,
        batch_size: int = MAX_BATCH_SIZE,
        event_source: str = "notifications-messaging",
        retry_policy: RetryPolicy | None = None,
        clock: Callable[[], datetime] = _utc_now,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: str | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            recipient_resolver: Expands group targets into users (injected).
            publisher: Outbound availability event publisher (injected).
            event_bus: Bus delivering RecordInsertedEvent; required for start().
            batch_size: Events per publish call, 1..10.
            event_source: ``source`` stamped on every availability event.
            retry_policy: Backoff and per-attempt timeout for resolution and publishing.
            clock: Timestamp source for availability events.
            get_logger: Logger factory (injected).
            logger_name: Optional logger name (defaults to class name).
        """
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")
        self._resolver = recipient_resolver
        self._publisher = publisher
        self._event_bus: "EventBus | None" = event_bus
        self._batch_size = batch_size
        self._event_source = event_source
        self._retry_policy = retry_policy or RetryPolicy()
        self._clock = clock
        self._get_logger = get_logger
        self._logger = get_logger(logger_name or self.__class__.__name__)

    async def start(self) -> None:
        """Subscribe to RecordInsertedEvent."""
        if self._event_bus is None:
            raise RuntimeError("FanOutDispatcher.start() requires an event bus")
        self._event_bus.on(RecordInsertedEvent, self._on_record_inserted)
        self._logger.debug("fanout_dispatcher_started")

    async def stop(self) -> None:
        """Unsubscribe from the bus."""
        self._unsubscribe()
        self._logger.debug("fanout_dispatcher_stopped")

    def _unsubscribe(self) -> None:
        key = RecordInsertedEvent.__name__
        handlers = getattr(self._event_bus, "handlers", {})
        if key in handlers:
            handlers[key] = [h for h in handlers[key] if h != self._on_record_inserted]

    async def _on_record_inserted(self, event: RecordInsertedEvent) -> None:
        """Handle a change notification: rebuild the record and dispatch it."""
        try:
            record = Record.from_item(event.new_image)
        except (KeyError, ValueError) as e:
            self._logger.error(
                "fanout_invalid_record_image",
                table=event.table,
                error=str(e),
            )
            return
        try:
            await self.dispatch(record)
        except (RecipientResolutionFailure, PublishFailure) as e:
            self._logger.error(
                "fanout_record_failed",
                record_id=str(record.id),
                target_key=record.target_key,
                error_type=type(e).__name__,
                error_message=str(e),
            )

    async def dispatch(self, record: Record) -> FanOutResult:
        """Resolve recipients for a record and publish its availability events.

        Args:
            record: A record as written to the store.

        Returns:
            FanOutResult with recipient and published counts.

        Raises:
            RecipientResolutionFailure: If recipient lookup failed after all retries.
            PublishFailure: If any batch failed after its retries (raised after all batches ran).
        """
        target_key = record.target_key
        with bound_contextvars(record_id=str(record.id), target_key=target_key):
            recipients = await self._recipients(record)
            if recipients is None:
                self._logger.debug("fanout_skipped_user_target")
                return FanOutResult(record_id=record.id, target_key=target_key)
            if not recipients:
                self._logger.info("fanout_no_recipients", target_type=record.target_type)
                return FanOutResult(record_id=record.id, target_key=target_key)

            events = [self._build_event(record, user_id, client_id) for user_id, client_id in recipients]
            published, failed, causes = await self._publish(events)
            if failed:
                self._logger.error(
                    "fanout_publish_incomplete",
                    recipients=len(recipients),
                    published=published,
                    failed=failed,
                )
                raise PublishFailure(
                    f"published {published} of {len(events)} availability events for record {record.id}",
                    record_id=record.id,
                    published=published,
                    failed=failed,
                    causes=causes,
                )
            self._logger.info(
                "fanout_completed",
                target_type=record.target_type,
                recipients=len(recipients),
                published=published,
            )
            return FanOutResult(
                record_id=record.id,
                target_key=target_key,
                recipients=len(recipients),
                published=published,
            )

    async def dispatch_many(self, records: Sequence[Record]) -> list[FanOutResult]:
        """Dispatch several records concurrently; one failure never affects the others.

        Returns:
            One FanOutResult per record, in input order. Failures carry ``error``.
        """

        async def run(record: Record) -> FanOutResult:
            try:
                return await self.dispatch(record)
            except (RecipientResolutionFailure, PublishFailure) as e:
                return FanOutResult(
                    record_id=record.id,
                    target_key=record.target_key,
                    published=getattr(e, "published", 0),
                    failed=getattr(e, "failed", 0),
                    error=e,
                )

        return list(await asyncio.gather(*(run(r) for r in records)))

    async def _recipients(self, record: Record) -> list[Recipient] | None:
        target = record.target
        match target:
            case UserTarget():
                return None
            case ClientTarget(client_id=client_id):
                users = await self._resolve(
                    lambda: self._resolver.resolve_client_users(client_id), record
                )
                only = _narrowing(record.metadata, TARGET_USER_IDS_KEY)
                return _dedupe(
                    (user, client_id) for user in users if only is None or user in only
                )
            case BroadcastTarget():
                pairs = await self._resolve(self._resolver.resolve_all_users, record)
                only = _narrowing(record.metadata, TARGET_CLIENT_IDS_KEY)
                return _dedupe(
                    (user, client) for user, client in pairs if only is None or client in only
                )
            case ChannelTarget(channel_id=channel_id):
                users = await self._resolve(
                    lambda: self._resolver.resolve_channel_participants(channel_id), record
                )
                return _dedupe((user, None) for user in users)
            case _:
                assert_never(target)

    async def _resolve[T](self, lookup: Callable[[], Awaitable[T]], record: Record) -> T:
        try:
            return await retry_async(
                lookup,
                policy=self._retry_policy,
                operation_name="recipient_resolution",
                get_logger=self._get_logger,
            )
        except Exception as e:
            raise RecipientResolutionFailure(
                f"could not resolve recipients for {record.target_key}: {e}",
                target_key=record.target_key,
                cause=e,
            ) from e

    async def _publish(self, events: list[AvailabilityEvent]) -> tuple[int, int, list[Exception]]:
        batches = [
            events[i : i + self._batch_size] for i in range(0, len(events), self._batch_size)
        ]

        async def publish_batch(batch: list[AvailabilityEvent]) -> None:
            await retry_async(
                lambda: self._publisher.publish(batch),
                policy=self._retry_policy,
                operation_name="availability_publish",
                get_logger=self._get_logger,
            )

        outcomes = await asyncio.gather(
            *(publish_batch(b) for b in batches), return_exceptions=True
        )
        published = failed = 0
        causes: list[Exception] = []
        for batch, outcome in zip(batches, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                failed += len(batch)
                causes.append(outcome)
            else:
                published += len(batch)
        return published, failed, causes

    def _build_event(self, record: Record, user_id: str, client_id: str | None) -> AvailabilityEvent:
        target_type = record.target_type
        channel_id: str | None = None
        match record.target:
            case ChannelTarget(channel_id=channel_id):
                detail_type = (
                    "chat.message.available"
                    if record.kind is RecordKind.MESSAGE
                    else "channel.notification.available"
                )
            case _:
                detail_type = f"{target_type}.{record.kind.value}.available"
        return AvailabilityEvent(
            detail_type=detail_type,
            source=self._event_source,
            availability_id=availability_id(record.id, user_id),
            recipient_id=user_id,
            record_id=record.id,
            record_kind=record.kind.value,
            target_type=target_type,
            original_target_key=record.target_key,
            client_id=client_id,
            channel_id=channel_id,
            priority=record.priority.value,
            title=record.title,
            content=record.content,
            sender_id=record.sender_id,
            fanout_source=f"{target_type}-targeting",
            timestamp=self._clock(),
        )
