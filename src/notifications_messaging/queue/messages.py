"""Envelope for items travelling through the inbound queue."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class QueueMessage[T]:
    """A queued payload plus its delivery bookkeeping.

    ``delivery_attempt`` starts at 1 and is incremented on each redelivery;
    the message id stays the same across redeliveries.
    """

    id: uuid.UUID
    payload: T
    created_at: datetime
    delivery_attempt: int = 1
    metadata: dict[str, Any] | None = None

    @classmethod
    def create(cls, payload: T, metadata: dict[str, Any] | None = None) -> QueueMessage[T]:
        """Wrap a payload for its first delivery."""
        return cls(
            id=uuid.uuid4(),
            payload=payload,
            created_at=datetime.now(UTC),
            metadata=metadata,
        )

    def redelivered(self) -> QueueMessage[T]:
        """Same message, next delivery attempt."""
        return replace(self, delivery_attempt=self.delivery_attempt + 1)
