# -*- coding: utf-8 -*-
"""Unit tests for InboundEvent."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from notifications_messaging.models.event import InboundEvent


def test_from_envelope() -> None:
    event = InboundEvent.from_envelope(
        {
            "source": "crm",
            "detail-type": "lead.created",
            "id": "evt-9",
            "time": "2026-03-02T09:30:00Z",
            "detail": {"tenantId": "t1"},
        }
    )

    assert event.source == "crm"
    assert event.detail_type == "lead.created"
    assert event.id == "evt-9"
    assert event.payload == {"tenantId": "t1"}
    assert event.timestamp == datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize("key", ["detailType", "detail_type"])
def test_from_envelope_accepts_detail_type_aliases(key: str) -> None:
    event = InboundEvent.from_envelope({"source": "crm", key: "lead.created"})

    assert event.detail_type == "lead.created"
    assert event.payload == {}
    assert event.id


@pytest.mark.parametrize(
    "envelope",
    [
        {"detail-type": "lead.created"},
        {"source": "crm"},
        {"source": "", "detail-type": "lead.created"},
        {"source": "crm", "detail-type": "lead.created", "detail": ["x"]},
    ],
)
def test_from_envelope_rejects_invalid(envelope: dict) -> None:
    with pytest.raises(ValueError):
        InboundEvent.from_envelope(envelope)


def test_create_generates_ids() -> None:
    first = InboundEvent.create("crm", "lead.created")
    second = InboundEvent.create("crm", "lead.created")

    assert first.id != second.id
    assert first.timestamp.tzinfo is not None


def test_offset_less_time_is_taken_as_utc() -> None:
    event = InboundEvent.from_envelope(
        {"source": "crm", "detail-type": "lead.created", "time": "2024-05-01T10:00:00"}
    )

    assert event.timestamp == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
