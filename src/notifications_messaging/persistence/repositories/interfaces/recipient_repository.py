"""Abstract interface for recipient lookup used by fan-out."""

from __future__ import annotations

from abc import ABC, abstractmethod


class IRecipientResolver(ABC):
    """Expands a group target into concrete user ids.

    Implementations may do network I/O; the fan-out dispatcher wraps every
    call in a timeout and retries.
    """

    @abstractmethod
    async def resolve_client_users(self, client_id: str) -> list[str]:
        """User ids belonging to a client."""
        ...

    @abstractmethod
    async def resolve_all_users(self) -> list[tuple[str, str]]:
        """Every (user_id, client_id) pair known to the system."""
        ...

    @abstractmethod
    async def resolve_channel_participants(self, channel_id: str) -> list[str]:
        """User ids of the channel's active participants."""
        ...
