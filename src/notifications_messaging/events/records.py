"""Record store change notifications."""

from __future__ import annotations

from typing import Any

from bubus import BaseEvent  # type: ignore[import-untyped]


class RecordInsertedEvent(BaseEvent[None]):
    """Emitted by the record store after a new record is written.

    Never emitted for a duplicate write of an existing id. Handled by
    FanOutDispatcher, which rebuilds the record with ``Record.from_item``.
    """

    table: str
    """``notifications`` or ``messages``."""

    new_image: dict[str, Any]
    """Store item as written (``Record.to_item()``)."""
