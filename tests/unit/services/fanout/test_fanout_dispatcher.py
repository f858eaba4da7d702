# -*- coding: utf-8 -*-
"""Unit tests for FanOutDispatcher."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from notifications_messaging.events.availability import AvailabilityEvent
from notifications_messaging.events.publisher import IEventPublisher
from notifications_messaging.events.records import RecordInsertedEvent
from notifications_messaging.exceptions import PublishFailure, RecipientResolutionFailure
from notifications_messaging.models.record import Record
from notifications_messaging.models.subscription import RecordKind
from notifications_messaging.models.target import (
    BroadcastTarget,
    ChannelTarget,
    ClientTarget,
    UserTarget,
)
from notifications_messaging.persistence.repositories.in_memory import (
    InMemoryRecipientRepository,
)
from notifications_messaging.services.fanout import FanOutDispatcher
from notifications_messaging.utils.identifiers import availability_id
from notifications_messaging.utils.retry import RetryPolicy


class _RecordingPublisher(IEventPublisher):
    """Collects published batches; batches containing a poisoned recipient fail."""

    def __init__(self, poisoned: set[str] | None = None, flaky_once: bool = False) -> None:
        self.batches: list[list[AvailabilityEvent]] = []
        self.calls = 0
        self._poisoned = poisoned or set()
        self._flaky_once = flaky_once
        self._failed_once: set[str] = set()

    async def publish(self, batch: Sequence[AvailabilityEvent]) -> None:
        self.calls += 1
        recipients = {e.recipient_id for e in batch}
        if recipients & self._poisoned:
            raise ConnectionError("bus unavailable")
        first = batch[0].recipient_id
        if self._flaky_once and first not in self._failed_once:
            self._failed_once.add(first)
            raise ConnectionError("throttled")
        self.batches.append(list(batch))

    @property
    def events(self) -> list[AvailabilityEvent]:
        return [e for b in self.batches for e in b]


@pytest.fixture
def publisher() -> _RecordingPublisher:
    return _RecordingPublisher()


@pytest.fixture
def dispatcher_factory(
    recipients: InMemoryRecipientRepository,
    publisher: _RecordingPublisher,
    fake_event_bus: Any,
    fast_retry: RetryPolicy,
    now_utc: datetime,
) -> Callable[..., FanOutDispatcher]:
    def _build(**overrides: Any) -> FanOutDispatcher:
        return FanOutDispatcher(
            overrides.pop("recipient_resolver", recipients),
            overrides.pop("publisher", publisher),
            overrides.pop("event_bus", fake_event_bus),
            retry_policy=fast_retry,
            clock=lambda: now_utc,
            get_logger=lambda _name: Mock(),
            **overrides,
        )

    return _build


async def test_scenario_c_client_record_fans_out_to_every_user(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    record_factory: Callable[..., Record],
) -> None:
    record = record_factory()

    result = await dispatcher_factory().dispatch(record)

    assert result.success
    assert result.recipients == 3
    assert result.published == 3
    events = publisher.events
    assert [e.recipient_id for e in events] == ["u1", "u2", "u3"]
    for event in events:
        assert event.record_id == record.id
        assert event.target_type == "client"
        assert event.detail_type == "client.notification.available"
        assert event.client_id == "t1"
        assert event.original_target_key == "client#t1"
        assert event.channel_id is None
        assert event.fanout_source == "client-targeting"
        assert event.title == "New Lead"
        assert event.availability_id == availability_id(record.id, event.recipient_id)


async def test_user_target_publishes_nothing(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    record_factory: Callable[..., Record],
) -> None:
    result = await dispatcher_factory().dispatch(record_factory(target=UserTarget("u1")))

    assert result.recipients == 0
    assert result.published == 0
    assert publisher.calls == 0


async def test_no_recipients_publishes_nothing(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    record_factory: Callable[..., Record],
) -> None:
    result = await dispatcher_factory().dispatch(record_factory(target=ClientTarget("empty")))

    assert result.success
    assert result.recipients == 0
    assert publisher.calls == 0


async def test_client_target_narrowed_by_target_user_ids(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    record_factory: Callable[..., Record],
) -> None:
    record = record_factory(metadata={"targetUserIds": ["u2", "u4"]})

    result = await dispatcher_factory().dispatch(record)

    assert result.recipients == 1
    assert [e.recipient_id for e in publisher.events] == ["u2"]


async def test_empty_narrowing_list_does_not_narrow(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    record_factory: Callable[..., Record],
) -> None:
    result = await dispatcher_factory().dispatch(record_factory(metadata={"targetUserIds": []}))

    assert result.recipients == 3


async def test_broadcast_reaches_all_clients_or_narrowed_clients(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    record_factory: Callable[..., Record],
) -> None:
    dispatcher = dispatcher_factory()

    everyone = await dispatcher.dispatch(record_factory(target=BroadcastTarget()))
    narrowed = await dispatcher.dispatch(
        record_factory(target=BroadcastTarget(), metadata={"targetClientIds": ["t2"]})
    )

    assert everyone.recipients == 4
    assert narrowed.recipients == 1
    last = publisher.events[-1]
    assert last.recipient_id == "u4"
    assert last.client_id == "t2"
    assert last.detail_type == "broadcast.notification.available"
    assert last.fanout_source == "broadcast-targeting"


@pytest.mark.parametrize(
    ("kind", "detail_type"),
    [
        (RecordKind.MESSAGE, "chat.message.available"),
        (RecordKind.NOTIFICATION, "channel.notification.available"),
    ],
)
async def test_channel_target_reaches_active_participants(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    record_factory: Callable[..., Record],
    kind: RecordKind,
    detail_type: str,
) -> None:
    record = record_factory(kind=kind, target=ChannelTarget("ch1"), sender_id="u1")

    await dispatcher_factory().dispatch(record)

    events = publisher.events
    assert [e.recipient_id for e in events] == ["u1", "u4"]
    assert {e.detail_type for e in events} == {detail_type}
    assert {e.channel_id for e in events} == {"ch1"}
    assert {e.client_id for e in events} == {None}
    assert events[0].sender_id == "u1"


async def test_duplicate_recipients_are_published_once(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    record_factory: Callable[..., Record],
) -> None:
    resolver = Mock()
    resolver.resolve_client_users = AsyncMock(return_value=["u1", "u2", "u1"])

    result = await dispatcher_factory(recipient_resolver=resolver).dispatch(record_factory())

    assert result.recipients == 2
    assert [e.recipient_id for e in publisher.events] == ["u1", "u2"]


async def test_events_are_published_in_batches_of_at_most_ten(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    record_factory: Callable[..., Record],
) -> None:
    resolver = Mock()
    resolver.resolve_client_users = AsyncMock(return_value=[f"u{i}" for i in range(23)])

    result = await dispatcher_factory(recipient_resolver=resolver).dispatch(record_factory())

    assert result.published == 23
    assert sorted(len(b) for b in publisher.batches) == [3, 10, 10]


async def test_custom_batch_size(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    record_factory: Callable[..., Record],
) -> None:
    await dispatcher_factory(batch_size=2).dispatch(record_factory())

    assert sorted(len(b) for b in publisher.batches) == [1, 2]


@pytest.mark.parametrize("batch_size", [0, 11])
def test_batch_size_outside_bounds_is_rejected(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    batch_size: int,
) -> None:
    with pytest.raises(ValueError):
        dispatcher_factory(batch_size=batch_size)


async def test_failed_batch_is_retried(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    record_factory: Callable[..., Record],
) -> None:
    flaky = _RecordingPublisher(flaky_once=True)

    result = await dispatcher_factory(publisher=flaky, batch_size=2).dispatch(record_factory())

    assert result.published == 3
    assert flaky.calls == 4


async def test_one_failing_batch_does_not_stop_the_others(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    fast_retry: RetryPolicy,
    record_factory: Callable[..., Record],
) -> None:
    failing = _RecordingPublisher(poisoned={"u1"})

    with pytest.raises(PublishFailure) as exc_info:
        await dispatcher_factory(publisher=failing, batch_size=2).dispatch(record_factory())

    assert exc_info.value.published == 1
    assert exc_info.value.failed == 2
    assert [e.recipient_id for e in failing.events] == ["u3"]
    assert failing.calls == fast_retry.max_attempts + 1
    assert isinstance(exc_info.value.causes[0], ConnectionError)


async def test_resolution_exhaustion_raises(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    fast_retry: RetryPolicy,
    record_factory: Callable[..., Record],
) -> None:
    resolver = Mock()
    resolver.resolve_client_users = AsyncMock(side_effect=ConnectionError("directory down"))

    with pytest.raises(RecipientResolutionFailure) as exc_info:
        await dispatcher_factory(recipient_resolver=resolver).dispatch(record_factory())

    assert exc_info.value.target_key == "client#t1"
    assert isinstance(exc_info.value.cause, ConnectionError)
    assert resolver.resolve_client_users.await_count == fast_retry.max_attempts
    assert publisher.calls == 0


async def test_dispatch_many_isolates_failures(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    record_factory: Callable[..., Record],
) -> None:
    resolver = Mock()
    resolver.resolve_client_users = AsyncMock(return_value=["u1"])
    resolver.resolve_channel_participants = AsyncMock(side_effect=ConnectionError("down"))
    records = [record_factory(), record_factory(target=ChannelTarget("ch1"))]

    results = await dispatcher_factory(recipient_resolver=resolver).dispatch_many(records)

    assert [r.record_id for r in results] == [r.id for r in records]
    assert results[0].success and results[0].published == 1
    assert isinstance(results[1].error, RecipientResolutionFailure)
    assert not results[1].success


async def test_redelivered_record_yields_same_availability_ids(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    record_factory: Callable[..., Record],
) -> None:
    record = record_factory()
    dispatcher = dispatcher_factory()

    await dispatcher.dispatch(record)
    await dispatcher.dispatch(record)

    ids = [e.availability_id for e in publisher.events]
    assert ids[:3] == ids[3:]


async def test_start_subscribes_and_handles_change_notifications(
    dispatcher_factory: Callable[..., FanOutDispatcher],
    publisher: _RecordingPublisher,
    fake_event_bus: Any,
    record_factory: Callable[..., Record],
) -> None:
    dispatcher = dispatcher_factory()
    await dispatcher.start()

    handlers = fake_event_bus.handlers["RecordInsertedEvent"]
    assert len(handlers) == 1
    record = record_factory()
    await handlers[0](RecordInsertedEvent(table="notifications", new_image=record.to_item()))

    assert len(publisher.events) == 3
    assert publisher.events[0].record_id == record.id

    await dispatcher.stop()
    assert fake_event_bus.handlers["RecordInsertedEvent"] == []


async def test_handler_logs_and_swallows_invalid_images(
    recipients: InMemoryRecipientRepository,
    publisher: _RecordingPublisher,
    fake_event_bus: Any,
    fast_retry: RetryPolicy,
) -> None:
    logger = Mock()
    dispatcher = FanOutDispatcher(
        recipients,
        publisher,
        fake_event_bus,
        retry_policy=fast_retry,
        get_logger=lambda _name: logger,
    )
    await dispatcher.start()

    await fake_event_bus.handlers["RecordInsertedEvent"][0](
        RecordInsertedEvent(table="notifications", new_image={"targetKey": "client#t1"})
    )

    assert publisher.calls == 0
    assert logger.error.call_args.args[0] == "fanout_invalid_record_image"


async def test_start_without_bus_raises(
    recipients: InMemoryRecipientRepository,
    publisher: _RecordingPublisher,
) -> None:
    dispatcher = FanOutDispatcher(recipients, publisher)

    with pytest.raises(RuntimeError):
        await dispatcher.start()
