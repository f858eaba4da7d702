"""Materialized record: a notification or message written to the store.

Records are created once by the template resolver and never mutated by the
pipeline. The store item shape (``to_item``/``from_item``) mirrors what the
store's change stream delivers: camelCase keys and the id under
``notificationId`` or ``messageId``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any
from uuid import UUID

from notifications_messaging.models.subscription import Priority, RecordKind
from notifications_messaging.models.target import Target
from notifications_messaging.utils import target_key as target_keys

SOURCE_EVENT_KEY = "sourceEvent"
SOURCE_EVENT_ID_KEY = "sourceEventId"
TARGET_USER_IDS_KEY = "targetUserIds"
TARGET_CLIENT_IDS_KEY = "targetClientIds"

_ID_KEYS: dict[RecordKind, str] = {
    RecordKind.NOTIFICATION: "notificationId",
    RecordKind.MESSAGE: "messageId",
}

# (attribute, item key) for optional fields copied verbatim when set
_OPTIONAL_FIELDS: tuple[tuple[str, str], ...] = (
    ("title", "title"),
    ("icon", "icon"),
    ("category", "category"),
    ("action_url", "actionUrl"),
    ("tags", "tags"),
    ("display_duration", "displayDuration"),
    ("sound", "sound"),
    ("tenant_id", "tenantId"),
    ("sender_id", "senderId"),
    ("message_type", "messageType"),
    ("user_type", "userType"),
)


@dataclass(frozen=True, slots=True)
class Record:
    """A notification or message addressed to exactly one target."""

    id: UUID
    kind: RecordKind
    target: Target
    created_at: datetime
    received_at: datetime
    content: str
    priority: Priority = Priority.MEDIUM
    title: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    icon: str | None = None
    category: str | None = None
    action_url: str | None = None
    tags: tuple[str, ...] | None = None
    display_duration: int | None = None
    sound: str | None = None
    tenant_id: str | None = None
    sender_id: str | None = None
    message_type: str | None = None
    user_type: str | None = None

    @property
    def target_key(self) -> str:
        """Storage partition key derived from the target."""
        return target_keys.target_key_for(self.target)

    @property
    def target_type(self) -> str:
        return self.target.target_type.value

    def to_item(self) -> dict[str, Any]:
        """Store item: camelCase keys, ISO timestamps, absent optionals omitted."""
        item: dict[str, Any] = {
            _ID_KEYS[self.kind]: str(self.id),
            "targetKey": self.target_key,
            "targetType": self.target_type,
            "createdAt": self.created_at.isoformat(),
            "dateReceived": self.received_at.isoformat(),
            "content": self.content,
            "priority": self.priority.value,
            "metadata": dict(self.metadata),
        }
        target_id = self.target.identifier
        if target_id is not None:
            item[f"{self.target_type}Id"] = target_id
        for attr, key in _OPTIONAL_FIELDS:
            value = getattr(self, attr)
            if value is None:
                continue
            item[key] = list(value) if isinstance(value, tuple) else value
        return item

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> Record:
        """Rebuild a record from a store item (e.g. a change-stream new image).

        Raises:
            ValueError: If the item has no id or an invalid target key.
        """
        if "notificationId" in item:
            kind, raw_id = RecordKind.NOTIFICATION, item["notificationId"]
        elif "messageId" in item:
            kind, raw_id = RecordKind.MESSAGE, item["messageId"]
        else:
            raise ValueError("store item has neither notificationId nor messageId")
        tags = item.get("tags")
        return cls(
            id=UUID(str(raw_id)),
            kind=kind,
            target=target_keys.parse_target_key(str(item.get("targetKey", ""))),
            created_at=datetime.fromisoformat(item["createdAt"]),
            received_at=datetime.fromisoformat(item["dateReceived"]),
            content=item.get("content") or "",
            priority=Priority(item.get("priority") or Priority.MEDIUM.value),
            title=item.get("title"),
            metadata=MappingProxyType(dict(item.get("metadata") or {})),
            icon=item.get("icon"),
            category=item.get("category"),
            action_url=item.get("actionUrl"),
            tags=tuple(tags) if tags is not None else None,
            display_duration=item.get("displayDuration"),
            sound=item.get("sound"),
            tenant_id=item.get("tenantId"),
            sender_id=item.get("senderId"),
            message_type=item.get("messageType"),
            user_type=item.get("userType"),
        )
