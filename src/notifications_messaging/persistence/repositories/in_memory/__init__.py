"""In-memory repository implementations."""

from notifications_messaging.persistence.repositories.in_memory.recipient_repository import (
    InMemoryRecipientRepository,
)
from notifications_messaging.persistence.repositories.in_memory.record_repository import (
    TABLE_NAMES,
    InMemoryRecordRepository,
)

__all__ = [
    "TABLE_NAMES",
    "InMemoryRecipientRepository",
    "InMemoryRecordRepository",
]
