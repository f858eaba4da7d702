# -*- coding: utf-8 -*-
"""In-memory user directory and channel membership."""

from __future__ import annotations

from notifications_messaging.persistence.repositories.interfaces.recipient_repository import (
    IRecipientResolver,
)


class InMemoryRecipientRepository(IRecipientResolver):
    """Users per client and participants per channel, held in dicts.

    Insertion order is preserved, so resolution results are deterministic.
    """

    def __init__(self) -> None:
        self._users: dict[str, str] = {}
        self._participants: dict[str, dict[str, bool]] = {}

    def add_user(self, user_id: str, client_id: str) -> None:
        """Register a user under a client (re-adding moves the user)."""
        self._users[user_id] = client_id

    def remove_user(self, user_id: str) -> None:
        self._users.pop(user_id, None)

    def add_channel_participant(self, channel_id: str, user_id: str, *, active: bool = True) -> None:
        self._participants.setdefault(channel_id, {})[user_id] = active

    def set_participant_active(self, channel_id: str, user_id: str, active: bool) -> None:
        members = self._participants.get(channel_id)
        if members is not None and user_id in members:
            members[user_id] = active

    async def resolve_client_users(self, client_id: str) -> list[str]:
        return [user for user, client in self._users.items() if client == client_id]

    async def resolve_all_users(self) -> list[tuple[str, str]]:
        return list(self._users.items())

    async def resolve_channel_participants(self, channel_id: str) -> list[str]:
        members = self._participants.get(channel_id, {})
        return [user for user, active in members.items() if active]
