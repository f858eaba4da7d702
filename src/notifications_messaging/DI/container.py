# -*- coding: utf-8 -*-
"""Dependency injection container (dependency-injector)."""

from __future__ import annotations

from dependency_injector import containers, providers

from notifications_messaging.clients.http import AsyncHttpClient
from notifications_messaging.clients.recipient_api import RecipientApiClient
from notifications_messaging.config import Settings, get_settings
from notifications_messaging.consumers.event_consumer import EventConsumer
from notifications_messaging.events.bus import get_event_bus
from notifications_messaging.events.publisher import BusEventPublisher
from notifications_messaging.exceptions import MissingRequiredConfigError
from notifications_messaging.models.event import InboundEvent
from notifications_messaging.persistence.repositories.in_memory import (
    InMemoryRecipientRepository,
    InMemoryRecordRepository,
)
from notifications_messaging.queue import InMemoryQueue, QueueMessage
from notifications_messaging.services.fanout import FanOutDispatcher
from notifications_messaging.services.materialization import EventMaterializerService
from notifications_messaging.subscriptions import PatternMatcher, SubscriptionRegistry
from notifications_messaging.templates import TemplateResolver
from notifications_messaging.utils.retry import RetryPolicy


def _build_event_queue(settings: Settings) -> InMemoryQueue[QueueMessage[InboundEvent]]:
    """Build the inbound queue with size from settings."""
    return InMemoryQueue[QueueMessage[InboundEvent]](maxsize=settings.ingest.queue_size)


def _build_subscription_registry(settings: Settings) -> SubscriptionRegistry:
    """Load subscriptions at cold start: inline JSON first, then the config file.

    Raises:
        MissingRequiredConfigError: If neither source is configured.
        ConfigError: If the document is malformed.
    """
    source = settings.subscriptions
    if source.config_json:
        return SubscriptionRegistry.from_json(source.config_json)
    if source.config_path:
        return SubscriptionRegistry.from_file(source.config_path)
    raise MissingRequiredConfigError("SUBSCRIPTIONS__CONFIG_PATH or SUBSCRIPTIONS__CONFIG_JSON")


def _recipient_backend(settings: Settings) -> str:
    return "http" if settings.recipient_api.enabled else "memory"


class Container(containers.DeclarativeContainer):
    """Application container. Wires settings, bus, queue, store, registry and services."""

    config = providers.Callable(get_settings)

    event_bus = providers.Callable(get_event_bus)

    retry_policy = providers.Singleton(RetryPolicy.from_settings, config.provided.retry)

    event_queue = providers.Singleton(_build_event_queue, config)

    subscription_registry = providers.Singleton(_build_subscription_registry, config)

    record_repository = providers.Singleton(
        InMemoryRecordRepository,
        event_bus=event_bus,
    )

    http_client = providers.Singleton(
        AsyncHttpClient,
        settings=config,
    )

    recipient_resolver = providers.Selector(
        providers.Callable(_recipient_backend, config),
        http=providers.Singleton(
            RecipientApiClient,
            http_client=http_client,
            settings=config,
        ),
        memory=providers.Singleton(InMemoryRecipientRepository),
    )

    pattern_matcher = providers.Singleton(PatternMatcher)

    template_resolver = providers.Singleton(TemplateResolver)

    event_materializer = providers.Singleton(
        EventMaterializerService,
        subscriptions=subscription_registry,
        record_repository=record_repository,
        matcher=pattern_matcher,
        resolver=template_resolver,
        retry_policy=retry_policy,
    )

    event_publisher = providers.Singleton(
        BusEventPublisher,
        event_bus=event_bus,
    )

    fanout_dispatcher = providers.Singleton(
        FanOutDispatcher,
        recipient_resolver=recipient_resolver,
        publisher=event_publisher,
        event_bus=event_bus,
        batch_size=config.provided.fanout.batch_size,
        event_source=config.provided.fanout.event_source,
        retry_policy=retry_policy,
    )

    event_consumer = providers.Singleton(
        EventConsumer,
        queue=event_queue,
        materializer=event_materializer,
        max_deliveries=config.provided.ingest.max_deliveries,
    )
