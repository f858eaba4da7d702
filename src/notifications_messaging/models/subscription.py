"""Compiled subscriptions: event patterns and per-detail-type templates.

Built once by the subscription registry and never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from notifications_messaging.models.field_value import FieldValue
from notifications_messaging.models.target import TargetType

type FilterScalar = str | int | float | bool | None
type DetailFilter = Mapping[str, tuple[FilterScalar, ...] | DetailFilter]


class RecordKind(str, Enum):
    """Which table a template materializes into."""

    NOTIFICATION = "notification"
    MESSAGE = "message"


class Priority(str, Enum):
    """Record priority; medium when the template does not say."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass(frozen=True, slots=True)
class EventPattern:
    """Exact-match pattern over source, detail type and (optionally) payload fields."""

    sources: frozenset[str]
    detail_types: frozenset[str]
    detail: DetailFilter | None = None


@dataclass(frozen=True, slots=True)
class Template:
    """Blueprint for the record one detail type materializes into.

    Every optional field is a FieldValue; None means the template omits it.
    """

    kind: RecordKind
    target_type: TargetType
    title: FieldValue[str] | None = None
    content: FieldValue[str] | None = None
    priority: Priority = Priority.MEDIUM
    user_id: FieldValue[str] | None = None
    client_id: FieldValue[str] | None = None
    channel_id: FieldValue[str] | None = None
    sender_id: FieldValue[str] | None = None
    target_user_ids: FieldValue[list[str]] | None = None
    target_client_ids: FieldValue[list[str]] | None = None
    metadata: FieldValue[Mapping[str, Any]] | None = None
    icon: FieldValue[str] | None = None
    category: FieldValue[str] | None = None
    action_url: FieldValue[str] | None = None
    tags: FieldValue[list[str]] | None = None
    display_duration: FieldValue[int] | None = None
    sound: FieldValue[str] | None = None


@dataclass(frozen=True, slots=True)
class Subscription:
    """A named pattern plus the templates it materializes per detail type."""

    name: str
    event_pattern: EventPattern
    description: str | None = None
    notification_mapping: Mapping[str, Template] = field(
        default_factory=lambda: MappingProxyType({})
    )
    message_mapping: Mapping[str, Template] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def templates_for(self, detail_type: str) -> list[Template]:
        """Templates to materialize for a detail type: notification first, then message."""
        templates: list[Template] = []
        notification = self.notification_mapping.get(detail_type)
        if notification is not None:
            templates.append(notification)
        message = self.message_mapping.get(detail_type)
        if message is not None:
            templates.append(message)
        return templates
