"""Record targets: who a record is addressed to.

A target is a tagged union over the four addressing modes. Code that branches
on the target uses ``match`` with ``assert_never`` so a new variant fails
type checking until every branch handles it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


class TargetType(str, Enum):
    """Addressing mode of a record."""

    USER = "user"
    CLIENT = "client"
    BROADCAST = "broadcast"
    CHANNEL = "channel"


@dataclass(frozen=True, slots=True)
class UserTarget:
    """One user. Already singly addressed, never fanned out."""

    user_id: str
    target_type: ClassVar[TargetType] = TargetType.USER

    @property
    def identifier(self) -> str:
        return self.user_id


@dataclass(frozen=True, slots=True)
class ClientTarget:
    """All users of a tenant (client)."""

    client_id: str
    target_type: ClassVar[TargetType] = TargetType.CLIENT

    @property
    def identifier(self) -> str:
        return self.client_id


@dataclass(frozen=True, slots=True)
class BroadcastTarget:
    """Every user across every client."""

    target_type: ClassVar[TargetType] = TargetType.BROADCAST

    @property
    def identifier(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class ChannelTarget:
    """Active participants of a chat channel."""

    channel_id: str
    target_type: ClassVar[TargetType] = TargetType.CHANNEL

    @property
    def identifier(self) -> str:
        return self.channel_id


type Target = UserTarget | ClientTarget | BroadcastTarget | ChannelTarget
