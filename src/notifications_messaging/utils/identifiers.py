"""Deterministic identifiers for records and availability events.

Redelivered events must produce the same ids so retried writes land as
duplicates of the first write and downstream consumers can dedupe.
"""

from __future__ import annotations

import uuid

RECORD_NAMESPACE = uuid.UUID("6f1c8a52-3b8e-4d0a-9a57-1f3e2c7b9d41")
AVAILABILITY_NAMESPACE = uuid.UUID("0b7d4e9a-52c1-4f6b-8e3d-a9c2f1e86b07")


def record_id(event_id: str, subscription: str, kind: str, detail_type: str) -> uuid.UUID:
    """Stable id for the record one subscription output materializes from one event."""
    return uuid.uuid5(RECORD_NAMESPACE, f"{event_id}|{subscription}|{kind}|{detail_type}")


def availability_id(record: uuid.UUID | str, recipient_id: str) -> str:
    """Stable id of the availability signal for a (record, recipient) pair."""
    return str(uuid.uuid5(AVAILABILITY_NAMESPACE, f"{record}|{recipient_id}"))
