"""Template resolution: one matched template + one event -> one Record."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any, assert_never

import structlog

from notifications_messaging.exceptions import MissingTargetFieldError, TemplateEvaluationError
from notifications_messaging.models.event import InboundEvent
from notifications_messaging.models.field_value import FieldValue, resolve_field
from notifications_messaging.models.record import (
    SOURCE_EVENT_ID_KEY,
    SOURCE_EVENT_KEY,
    TARGET_CLIENT_IDS_KEY,
    TARGET_USER_IDS_KEY,
    Record,
)
from notifications_messaging.models.subscription import RecordKind, Template
from notifications_messaging.models.target import (
    BroadcastTarget,
    ChannelTarget,
    ClientTarget,
    Target,
    TargetType,
    UserTarget,
)
from notifications_messaging.utils.identifiers import record_id


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


class TemplateResolver:
    """Evaluates a template against an event payload and builds the Record.

    Each field is resolved exactly once. Provenance metadata (sourceEvent,
    sourceEventId) is written last and cannot be overridden by the template.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utc_now,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: str | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            clock: Source of created_at timestamps (injected for tests).
            get_logger: Logger factory (injected).
            logger_name: Optional logger name (defaults to class name).
        """
        self._clock = clock
        self._logger = get_logger(logger_name or self.__class__.__name__)

    def resolve(
        self,
        template: Template,
        event: InboundEvent,
        *,
        subscription_name: str,
    ) -> Record:
        """Materialize a record from a template and an event.

        Args:
            template: Template selected by the event's detail type.
            event: Inbound event; computed fields receive its payload.
            subscription_name: Owning subscription, for errors and the record id.

        Returns:
            The record to write. Nothing is persisted here.

        Raises:
            TemplateEvaluationError: A computed field raised, or resolved to the wrong shape.
            MissingTargetFieldError: The identifier the target type requires is empty.
        """
        payload = event.payload

        def field(name: str, value: FieldValue[Any] | None) -> Any:
            try:
                return resolve_field(value, payload)
            except Exception as e:
                raise TemplateEvaluationError(subscription_name, name, cause=e) from e

        target = self._resolve_target(template, field, subscription_name)

        template_metadata = field("metadata", template.metadata)
        if template_metadata is not None and not isinstance(template_metadata, Mapping):
            raise TemplateEvaluationError(
                subscription_name,
                "metadata",
                cause=TypeError(f"expected a mapping, got {type(template_metadata).__name__}"),
            )
        metadata: dict[str, Any] = dict(template_metadata or {})
        if isinstance(target, ClientTarget) and template.target_user_ids is not None:
            metadata[TARGET_USER_IDS_KEY] = self._string_list(
                field("targetUserIds", template.target_user_ids), subscription_name, "targetUserIds"
            )
        if isinstance(target, BroadcastTarget) and template.target_client_ids is not None:
            metadata[TARGET_CLIENT_IDS_KEY] = self._string_list(
                field("targetClientIds", template.target_client_ids),
                subscription_name,
                "targetClientIds",
            )
        metadata[SOURCE_EVENT_KEY] = event.detail_type
        metadata[SOURCE_EVENT_ID_KEY] = event.id

        tags = field("tags", template.tags)
        display_duration = field("displayDuration", template.display_duration)
        if display_duration is not None:
            try:
                display_duration = int(display_duration)
            except (TypeError, ValueError) as e:
                raise TemplateEvaluationError(subscription_name, "displayDuration", cause=e) from e

        is_channel_message = (
            template.kind is RecordKind.MESSAGE and isinstance(target, ChannelTarget)
        )
        tenant_id = payload.get("tenantId")
        user_type = payload.get("userType") if is_channel_message else None

        record = Record(
            id=record_id(event.id, subscription_name, template.kind.value, event.detail_type),
            kind=template.kind,
            target=target,
            created_at=self._clock(),
            received_at=event.timestamp,
            title=_text(field("title", template.title)),
            content=_text(field("content", template.content)) or "",
            priority=template.priority,
            metadata=MappingProxyType(metadata),
            icon=_text(field("icon", template.icon)),
            category=_text(field("category", template.category)),
            action_url=_text(field("actionUrl", template.action_url)),
            tags=tuple(self._string_list(tags, subscription_name, "tags")) if tags is not None else None,
            display_duration=display_duration,
            sound=_text(field("sound", template.sound)),
            tenant_id=_text(tenant_id) if tenant_id else None,
            sender_id=_text(field("senderId", template.sender_id)),
            message_type="chat" if is_channel_message else None,
            user_type=_text(user_type) if user_type else None,
        )
        self._logger.debug(
            "template_resolved",
            subscription=subscription_name,
            record_id=str(record.id),
            record_kind=record.kind.value,
            target_key=record.target_key,
            event_id=event.id,
        )
        return record

    @staticmethod
    def _resolve_target(
        template: Template,
        field: Callable[[str, FieldValue[Any] | None], Any],
        subscription_name: str,
    ) -> Target:
        def required(name: str, value: FieldValue[Any] | None) -> str:
            resolved = _text(field(name, value))
            if resolved is None or not resolved.strip():
                raise MissingTargetFieldError(
                    template.target_type.value, name, subscription=subscription_name
                )
            return resolved.strip()

        target_type = template.target_type
        match target_type:
            case TargetType.USER:
                return UserTarget(user_id=required("userId", template.user_id))
            case TargetType.CLIENT:
                return ClientTarget(client_id=required("clientId", template.client_id))
            case TargetType.CHANNEL:
                return ChannelTarget(channel_id=required("channelId", template.channel_id))
            case TargetType.BROADCAST:
                return BroadcastTarget()
            case _:
                assert_never(target_type)

    @staticmethod
    def _string_list(value: Any, subscription_name: str, name: str) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str) or not isinstance(value, Iterable):
            raise TemplateEvaluationError(
                subscription_name,
                name,
                cause=TypeError(f"expected a list, got {type(value).__name__}"),
            )
        return [str(item) for item in value if item is not None]
