"""Persistence layer (repositories)."""

from notifications_messaging.persistence.repositories import (
    IRecipientResolver,
    IRecordRepository,
    InMemoryRecipientRepository,
    InMemoryRecordRepository,
)

__all__ = [
    "IRecipientResolver",
    "IRecordRepository",
    "InMemoryRecipientRepository",
    "InMemoryRecordRepository",
]
