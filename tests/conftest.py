# -*- coding: utf-8 -*-
"""Shared pytest fixtures for unit tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any
from uuid import UUID, uuid4

import pytest
from bubus import EventBus  # type: ignore[import-untyped]

from notifications_messaging.models.event import InboundEvent
from notifications_messaging.models.record import Record
from notifications_messaging.models.subscription import Priority, RecordKind
from notifications_messaging.models.target import ClientTarget, Target
from notifications_messaging.persistence.repositories.in_memory import (
    InMemoryRecipientRepository,
    InMemoryRecordRepository,
)
from notifications_messaging.subscriptions import SubscriptionRegistry
from notifications_messaging.utils.retry import RetryPolicy


class FakeEventBus:
    """Minimal event bus fake: records dispatches, keeps handlers per event name."""

    def __init__(self) -> None:
        self.handlers: dict[str, list[Any]] = {}
        self.dispatched: list[Any] = []

    def on(self, event_type: type[Any], handler: Any) -> None:
        self.handlers.setdefault(event_type.__name__, []).append(handler)

    def dispatch(self, event: Any) -> Any:
        self.dispatched.append(event)
        return event


@pytest.fixture
def now_utc() -> datetime:
    """Stable UTC timestamp for deterministic assertions."""
    return datetime(2026, 3, 2, 9, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def lead_subscription_config() -> dict[str, Any]:
    """Subscription mapping lead.created to a client-targeted notification."""
    return {
        "name": "lead-created",
        "description": "Notify the tenant when a lead is created",
        "eventPattern": {"source": ["crm"], "detailType": ["lead.created"]},
        "notificationMapping": {
            "lead.created": {
                "targetType": "client",
                "clientId": {"expr": "detail.tenantId"},
                "title": "New Lead",
                "content": {"expr": 'f"Lead {detail.leadName} was created"'},
                "priority": "high",
            }
        },
    }


@pytest.fixture
def registry(lead_subscription_config: dict[str, Any]) -> SubscriptionRegistry:
    return SubscriptionRegistry.load([lead_subscription_config])


@pytest.fixture
def event_factory(now_utc: datetime) -> Callable[..., InboundEvent]:
    """Build InboundEvent with sensible defaults and easy overrides."""

    def _build(**overrides: Any) -> InboundEvent:
        return InboundEvent.create(
            overrides.pop("source", "crm"),
            overrides.pop("detail_type", "lead.created"),
            overrides.pop("payload", {"tenantId": "t1", "leadName": "Ada"}),
            id=overrides.pop("id", "evt-1"),
            timestamp=overrides.pop("timestamp", now_utc),
        )

    return _build


@pytest.fixture
def record_factory(now_utc: datetime) -> Callable[..., Record]:
    """Build Record (client-targeted notification by default)."""

    def _build(**overrides: Any) -> Record:
        target: Target = overrides.pop("target", ClientTarget(client_id="t1"))
        metadata = overrides.pop("metadata", {"sourceEvent": "lead.created", "sourceEventId": "evt-1"})
        record_id: UUID = overrides.pop("id", uuid4())
        return Record(
            id=record_id,
            kind=overrides.pop("kind", RecordKind.NOTIFICATION),
            target=target,
            created_at=overrides.pop("created_at", now_utc),
            received_at=overrides.pop("received_at", now_utc),
            content=overrides.pop("content", "Lead Ada was created"),
            priority=overrides.pop("priority", Priority.HIGH),
            title=overrides.pop("title", "New Lead"),
            metadata=MappingProxyType(dict(metadata)),
            **overrides,
        )

    return _build


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Three attempts, no backoff, short timeout."""
    return RetryPolicy(
        max_attempts=3,
        backoff_base_seconds=0.0,
        backoff_max_seconds=0.0,
        timeout_seconds=1.0,
        jitter_seconds=0.0,
    )


@pytest.fixture
def fake_event_bus() -> FakeEventBus:
    return FakeEventBus()


@pytest.fixture
def record_repo(fake_event_bus: FakeEventBus) -> InMemoryRecordRepository:
    """Fresh record store per test, dispatching to the fake bus."""
    return InMemoryRecordRepository(event_bus=fake_event_bus)


@pytest.fixture
def recipients() -> InMemoryRecipientRepository:
    """Two clients with users and one channel with an inactive participant."""
    repo = InMemoryRecipientRepository()
    for user in ("u1", "u2", "u3"):
        repo.add_user(user, "t1")
    repo.add_user("u4", "t2")
    repo.add_channel_participant("ch1", "u1")
    repo.add_channel_participant("ch1", "u4")
    repo.add_channel_participant("ch1", "u9", active=False)
    return repo


@pytest.fixture
def event_bus() -> EventBus:
    """Isolated event bus instance for tests."""
    return EventBus(
        name="NotificationsMessagingTests",
        max_history_size=200,
        wal_path=None,
    )
