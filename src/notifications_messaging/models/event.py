"""Inbound event: what an external publisher put on the bus."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class InboundEvent:
    """An event delivered (at least once) by the inbound bus.

    ``payload`` is the event detail; templates and detail filters read from it.
    """

    source: str
    detail_type: str
    id: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def create(
        cls,
        source: str,
        detail_type: str,
        payload: Mapping[str, Any] | None = None,
        *,
        id: str | None = None,
        timestamp: datetime | None = None,
    ) -> InboundEvent:
        """Create an event, generating id and timestamp when not given."""
        return cls(
            source=source,
            detail_type=detail_type,
            id=id or str(uuid4()),
            payload=dict(payload or {}),
            timestamp=timestamp or datetime.now(UTC),
        )

    @classmethod
    def from_envelope(cls, envelope: Mapping[str, Any]) -> InboundEvent:
        """Parse the bus envelope shape ``{source, detail-type, id, detail, time}``.

        ``detailType``/``detail_type`` are accepted as aliases of ``detail-type``.

        Raises:
            ValueError: If source or detail type is missing, or detail is not an object.
        """
        source = envelope.get("source")
        detail_type = (
            envelope.get("detail-type")
            or envelope.get("detailType")
            or envelope.get("detail_type")
        )
        if not isinstance(source, str) or not source:
            raise ValueError("event envelope is missing 'source'")
        if not isinstance(detail_type, str) or not detail_type:
            raise ValueError("event envelope is missing 'detail-type'")
        detail = envelope.get("detail") or {}
        if not isinstance(detail, Mapping):
            raise ValueError("event 'detail' must be an object")
        raw_time = envelope.get("time")
        timestamp: datetime | None = None
        if isinstance(raw_time, str) and raw_time:
            timestamp = datetime.fromisoformat(raw_time.replace("Z", "+00:00"))
            if timestamp.tzinfo is None:
                # offset-less times are taken as UTC
                timestamp = timestamp.replace(tzinfo=UTC)
        raw_id = envelope.get("id")
        return cls.create(
            source,
            detail_type,
            detail,
            id=str(raw_id) if raw_id else None,
            timestamp=timestamp,
        )
