"""Outbound availability events: one per (record, recipient)."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from bubus import BaseEvent  # type: ignore[import-untyped]


class AvailabilityEvent(BaseEvent[None]):
    """Tells a delivery consumer that a record is available for one recipient.

    Carries enough of the record for a consumer to render it without a
    store read. Published only; this service never consumes it.
    """

    detail_type: str
    """E.g. ``client.notification.available`` or ``chat.message.available``."""

    source: str
    availability_id: str
    """Stable per (record, recipient); redelivery yields the same id."""

    recipient_id: str
    record_id: UUID
    record_kind: Literal["notification", "message"]
    target_type: Literal["client", "broadcast", "channel"]
    original_target_key: str
    client_id: str | None = None
    channel_id: str | None = None
    priority: str
    title: str | None = None
    content: str
    sender_id: str | None = None
    fanout_source: str
    timestamp: datetime
