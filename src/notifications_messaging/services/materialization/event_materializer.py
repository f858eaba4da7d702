"""Pipeline driver: one inbound event -> records for every matching subscription."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

import structlog
from structlog.contextvars import bound_contextvars

from notifications_messaging.exceptions import (
    EventMaterializationError,
    NotificationsMessagingError,
    RecordStoreError,
)
from notifications_messaging.models.event import InboundEvent
from notifications_messaging.models.record import Record
from notifications_messaging.models.subscription import Subscription
from notifications_messaging.persistence.repositories.interfaces.record_repository import (
    IRecordRepository,
)
from notifications_messaging.subscriptions.matcher import PatternMatcher
from notifications_messaging.templates.resolver import TemplateResolver
from notifications_messaging.utils.retry import RetryPolicy, retry_async


@dataclass(frozen=True)
class MaterializationResult:
    """Outcome of materializing one event."""

    event_id: str
    matched: list[str]
    """Names of matching subscriptions, in configuration order."""
    written: list[UUID] = field(default_factory=list)
    """Ids of records inserted by this call."""
    duplicates: list[UUID] = field(default_factory=list)
    """Ids that already existed (redelivery); no change notification was emitted."""
    failures: Mapping[str, Exception] = field(default_factory=dict)
    """Subscription name -> error, for subscriptions that failed."""

    @property
    def success(self) -> bool:
        return not self.failures


class EventMaterializerService:
    """Matches an event against the registry and writes one record per matched template.

    Subscriptions are processed sequentially and in isolation: one failing
    subscription never prevents the others from writing. The event fails as
    a whole only when every matched subscription failed.
    """

    def __init__(
        self,
        subscriptions: Iterable[Subscription],
        record_repository: IRecordRepository,
        *,
        matcher: PatternMatcher | None = None,
        resolver: TemplateResolver | None = None,
        retry_policy: RetryPolicy | None = None,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: str | None = None,
    ) -> None:
        """Initialize the materializer.

        Args:
            subscriptions: Compiled subscriptions (usually the SubscriptionRegistry).
            record_repository: Record store (injected).
            matcher: Pattern matcher; a default one is built when omitted.
            resolver: Template resolver; a default one is built when omitted.
            retry_policy: Backoff for store writes.
            get_logger: Logger factory (injected).
            logger_name: Optional logger name (defaults to class name).
        """
        self._subscriptions = subscriptions
        self._repo = record_repository
        self._matcher = matcher or PatternMatcher(get_logger=get_logger)
        self._resolver = resolver or TemplateResolver(get_logger=get_logger)
        self._retry_policy = retry_policy or RetryPolicy()
        self._get_logger = get_logger
        self._logger = get_logger(logger_name or self.__class__.__name__)

    async def process(self, event: InboundEvent) -> MaterializationResult:
        """Materialize records for an event.

        Args:
            event: Inbound event.

        Returns:
            MaterializationResult listing written and duplicate record ids and
            per-subscription failures (partial failures are not raised).

        Raises:
            EventMaterializationError: If at least one subscription matched and all of them failed.
        """
        with bound_contextvars(event_id=event.id, detail_type=event.detail_type):
            matched = self._matcher.find_matches(event, self._subscriptions)
            written: list[UUID] = []
            duplicates: list[UUID] = []
            failures: dict[str, Exception] = {}

            for subscription in matched:
                try:
                    for record in self._records_for(subscription, event):
                        if await self._store(record):
                            written.append(record.id)
                        else:
                            duplicates.append(record.id)
                except Exception as e:
                    failures[subscription.name] = e
                    self._logger.warning(
                        "subscription_materialization_failed",
                        subscription=subscription.name,
                        error_type=type(e).__name__,
                        error_message=str(e),
                        retryable=getattr(e, "retryable", True),
                    )

            result = MaterializationResult(
                event_id=event.id,
                matched=[s.name for s in matched],
                written=written,
                duplicates=duplicates,
                failures=failures,
            )
            if matched and len(failures) == len(matched):
                self._logger.error(
                    "event_materialization_failed",
                    subscriptions=result.matched,
                )
                raise EventMaterializationError(event.id, failures)

            self._logger.info(
                "event_materialized",
                subscriptions=result.matched,
                records_written=len(written),
                records_duplicate=len(duplicates),
                subscriptions_failed=sorted(failures),
            )
            return result

    def _records_for(self, subscription: Subscription, event: InboundEvent) -> list[Record]:
        # All templates of a subscription resolve before any of its records is written
        return [
            self._resolver.resolve(template, event, subscription_name=subscription.name)
            for template in subscription.templates_for(event.detail_type)
        ]

    async def _store(self, record: Record) -> bool:
        try:
            return await retry_async(
                lambda: self._repo.put(record),
                policy=self._retry_policy,
                operation_name="record_store_put",
                get_logger=self._get_logger,
            )
        except NotificationsMessagingError:
            raise
        except Exception as e:
            raise RecordStoreError(f"failed to write record {record.id}: {e}") from e
