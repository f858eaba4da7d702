# -*- coding: utf-8 -*-
"""Unit tests for the dependency injection container wiring."""

from __future__ import annotations

import json
from typing import Any

import pytest
from dependency_injector import providers

from notifications_messaging.DI import Container
from notifications_messaging.clients import RecipientApiClient
from notifications_messaging.config import Settings
from notifications_messaging.config.config import (
    FanOutSettings,
    RecipientApiSettings,
    SubscriptionSettings,
)
from notifications_messaging.exceptions import MissingRequiredConfigError
from notifications_messaging.persistence.repositories.in_memory import InMemoryRecipientRepository
from notifications_messaging.services.fanout import FanOutDispatcher
from notifications_messaging.services.materialization import EventMaterializerService


def _container(settings: Settings, bus: Any) -> Container:
    container = Container()
    container.config.override(providers.Object(settings))
    container.event_bus.override(providers.Object(bus))
    return container


def test_wires_services_from_settings(
    lead_subscription_config: dict[str, Any],
    fake_event_bus: Any,
) -> None:
    settings = Settings(
        subscriptions=SubscriptionSettings(config_json=json.dumps([lead_subscription_config])),
        fanout=FanOutSettings(batch_size=5),
    )
    container = _container(settings, fake_event_bus)

    assert container.subscription_registry().names == ["lead-created"]
    assert isinstance(container.event_materializer(), EventMaterializerService)
    dispatcher = container.fanout_dispatcher()
    assert isinstance(dispatcher, FanOutDispatcher)
    assert dispatcher._batch_size == 5
    assert isinstance(container.recipient_resolver(), InMemoryRecipientRepository)
    assert container.event_consumer() is container.event_consumer()


def test_http_recipient_backend_when_enabled(fake_event_bus: Any) -> None:
    settings = Settings(recipient_api=RecipientApiSettings(enabled=True))
    container = _container(settings, fake_event_bus)

    assert isinstance(container.recipient_resolver(), RecipientApiClient)


def test_missing_subscription_source_raises(fake_event_bus: Any) -> None:
    container = _container(Settings(subscriptions=SubscriptionSettings()), fake_event_bus)

    with pytest.raises(MissingRequiredConfigError):
        container.subscription_registry()
