# -*- coding: utf-8 -*-
"""Repositories: interfaces (abstractions) and in-memory implementations."""

from notifications_messaging.persistence.repositories.in_memory import (
    InMemoryRecipientRepository,
    InMemoryRecordRepository,
)
from notifications_messaging.persistence.repositories.interfaces import (
    IRecipientResolver,
    IRecordRepository,
)

__all__ = [
    "IRecipientResolver",
    "IRecordRepository",
    "InMemoryRecipientRepository",
    "InMemoryRecordRepository",
]
