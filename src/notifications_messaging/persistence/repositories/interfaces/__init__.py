# -*- coding: utf-8 -*-
"""Repository interfaces (abstractions). Implementations live in in_memory/ and clients/."""

from notifications_messaging.persistence.repositories.interfaces.recipient_repository import (
    IRecipientResolver,
)
from notifications_messaging.persistence.repositories.interfaces.record_repository import (
    IRecordRepository,
)

__all__ = [
    "IRecipientResolver",
    "IRecordRepository",
]
