# -*- coding: utf-8 -*-
"""Unit tests for InMemoryRecipientRepository."""

from __future__ import annotations

from notifications_messaging.persistence.repositories.in_memory import (
    InMemoryRecipientRepository,
)


async def test_resolve_client_users(recipients: InMemoryRecipientRepository) -> None:
    assert await recipients.resolve_client_users("t1") == ["u1", "u2", "u3"]
    assert await recipients.resolve_client_users("t2") == ["u4"]
    assert await recipients.resolve_client_users("missing") == []


async def test_resolve_all_users_pairs_user_and_client(recipients: InMemoryRecipientRepository) -> None:
    assert await recipients.resolve_all_users() == [
        ("u1", "t1"),
        ("u2", "t1"),
        ("u3", "t1"),
        ("u4", "t2"),
    ]


async def test_channel_participants_exclude_inactive(recipients: InMemoryRecipientRepository) -> None:
    assert await recipients.resolve_channel_participants("ch1") == ["u1", "u4"]

    recipients.set_participant_active("ch1", "u9", True)
    recipients.set_participant_active("ch1", "u1", False)

    assert await recipients.resolve_channel_participants("ch1") == ["u4", "u9"]
    assert await recipients.resolve_channel_participants("unknown") == []


async def test_remove_user(recipients: InMemoryRecipientRepository) -> None:
    recipients.remove_user("u2")
    recipients.remove_user("nobody")

    assert await recipients.resolve_client_users("t1") == ["u1", "u3"]
