"""Exact-match event pattern evaluation.

Source and detail type are matched by set membership only: a pattern for
``lead.created`` never matches ``lead.created.v2``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

import structlog

from notifications_messaging.models.event import InboundEvent
from notifications_messaging.models.subscription import (
    DetailFilter,
    EventPattern,
    FilterScalar,
    Subscription,
)


def _scalar_allowed(value: Any, allowed: tuple[FilterScalar, ...]) -> bool:
    for candidate in allowed:
        # True == 1 in Python; a filter on booleans must not match numbers
        if isinstance(value, bool) or isinstance(candidate, bool):
            if type(value) is type(candidate) and value == candidate:
                return True
            continue
        if value == candidate:
            return True
    return False


def _value_allowed(value: Any, allowed: tuple[FilterScalar, ...]) -> bool:
    if isinstance(value, list | tuple):
        return any(
            not isinstance(item, Mapping | list | tuple) and _scalar_allowed(item, allowed)
            for item in value
        )
    if isinstance(value, Mapping):
        return False
    return _scalar_allowed(value, allowed)


def detail_matches(payload: Mapping[str, Any], detail_filter: DetailFilter) -> bool:
    """True when every filtered payload field is present and allowed."""
    for key, allowed in detail_filter.items():
        if key not in payload:
            return False
        value = payload[key]
        if isinstance(allowed, Mapping):
            if not isinstance(value, Mapping) or not detail_matches(value, allowed):
                return False
        elif not _value_allowed(value, allowed):
            return False
    return True


def matches(event: InboundEvent, pattern: EventPattern) -> bool:
    """True when the event satisfies the pattern."""
    if event.source not in pattern.sources:
        return False
    if event.detail_type not in pattern.detail_types:
        return False
    if pattern.detail is not None:
        return detail_matches(event.payload, pattern.detail)
    return True


def find_matches(
    event: InboundEvent, subscriptions: Iterable[Subscription]
) -> list[Subscription]:
    """All subscriptions whose pattern matches, in configuration order."""
    return [s for s in subscriptions if matches(event, s.event_pattern)]


class PatternMatcher:
    """Selects the subscriptions an inbound event triggers."""

    def __init__(
        self,
        *,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: str | None = None,
    ) -> None:
        self._logger = get_logger(logger_name or self.__class__.__name__)

    def find_matches(
        self, event: InboundEvent, subscriptions: Iterable[Subscription]
    ) -> list[Subscription]:
        matched = find_matches(event, subscriptions)
        if matched:
            self._logger.debug(
                "event_matched",
                event_id=event.id,
                detail_type=event.detail_type,
                subscriptions=[s.name for s in matched],
            )
        else:
            self._logger.debug(
                "event_unmatched",
                event_id=event.id,
                source=event.source,
                detail_type=event.detail_type,
            )
        return matched
