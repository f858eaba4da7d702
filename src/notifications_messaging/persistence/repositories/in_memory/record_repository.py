# -*- coding: utf-8 -*-
"""In-memory record store with change notifications on the event bus."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Callable
from uuid import UUID

import structlog

from notifications_messaging.events.records import RecordInsertedEvent
from notifications_messaging.models.record import Record
from notifications_messaging.models.subscription import RecordKind
from notifications_messaging.persistence.repositories.interfaces.record_repository import (
    IRecordRepository,
)

if TYPE_CHECKING:
    from bubus import EventBus  # type: ignore[import-untyped]

TABLE_NAMES: dict[RecordKind, str] = {
    RecordKind.NOTIFICATION: "notifications",
    RecordKind.MESSAGE: "messages",
}


class InMemoryRecordRepository(IRecordRepository):
    """Two tables (notifications, messages) keyed by record id.

    When an event bus is given, each first insert dispatches a
    RecordInsertedEvent carrying the stored item.
    """

    def __init__(
        self,
        event_bus: Any = None,
        *,
        get_logger: Callable[[str], Any] = structlog.get_logger,
        logger_name: str | None = None,
    ) -> None:
        self._event_bus: "EventBus | None" = event_bus
        self._tables: dict[RecordKind, dict[UUID, Record]] = {kind: {} for kind in RecordKind}
        self._lock = asyncio.Lock()
        self._logger = get_logger(logger_name or self.__class__.__name__)

    async def put(self, record: Record) -> bool:
        async with self._lock:
            table = self._tables[record.kind]
            if record.id in table:
                self._logger.debug(
                    "record_already_exists",
                    record_id=str(record.id),
                    table=TABLE_NAMES[record.kind],
                )
                return False
            table[record.id] = record
        self._logger.debug(
            "record_inserted",
            record_id=str(record.id),
            table=TABLE_NAMES[record.kind],
            target_key=record.target_key,
        )
        if self._event_bus is not None:
            self._event_bus.dispatch(
                RecordInsertedEvent(table=TABLE_NAMES[record.kind], new_image=record.to_item())
            )
        return True

    async def get_by_id(self, record_id: UUID) -> Record | None:
        for table in self._tables.values():
            record = table.get(record_id)
            if record is not None:
                return record
        return None

    async def query_by_partition(
        self,
        target_key: str,
        *,
        kind: RecordKind | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        kinds = [kind] if kind is not None else list(RecordKind)
        records = [
            r
            for k in kinds
            for r in self._tables[k].values()
            if r.target_key == target_key
        ]
        records.sort(key=lambda r: r.received_at, reverse=True)
        return records[:limit] if limit is not None else records

    def __len__(self) -> int:
        return sum(len(table) for table in self._tables.values())
