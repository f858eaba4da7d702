"""Abstract interface for the record store (notifications and messages tables)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from uuid import UUID

from notifications_messaging.models.record import Record
from notifications_messaging.models.subscription import RecordKind


class IRecordRepository(ABC):
    """Persists materialized records, partitioned by target key.

    Writes are idempotent by record id. A successful first write emits a
    change notification; a duplicate write emits nothing.
    """

    @abstractmethod
    async def put(self, record: Record) -> bool:
        """Write a record.

        Returns:
            True if the record was inserted, False if its id already existed.

        Raises:
            RecordStoreError: If the store rejected or failed the write.
        """
        ...

    @abstractmethod
    async def get_by_id(self, record_id: UUID) -> Record | None:
        """Return the record with this id, or None."""
        ...

    @abstractmethod
    async def query_by_partition(
        self,
        target_key: str,
        *,
        kind: RecordKind | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        """Records of one partition, newest received first.

        Args:
            target_key: Partition key (``user#u1``, ``broadcast``, ...).
            kind: Restrict to one table; None reads both.
            limit: Maximum number of records returned.
        """
        ...
