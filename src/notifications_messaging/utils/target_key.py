"""Storage partition keys derived from record targets."""

from __future__ import annotations

from typing import assert_never

from notifications_messaging.models.target import (
    BroadcastTarget,
    ChannelTarget,
    ClientTarget,
    Target,
    TargetType,
    UserTarget,
)

BROADCAST_KEY = "broadcast"
_SEPARATOR = "#"


def build_target_key(target_type: TargetType | str, identifier: str | None = None) -> str:
    """Return the partition key for a target type and identifier.

    ``user#{id}``, ``client#{id}``, ``channel#{id}`` or ``broadcast``. The
    identifier is ignored for broadcast and required for every other type.

    Raises:
        ValueError: If the identifier is missing for a non-broadcast type.
    """
    target_type = TargetType(target_type)
    if target_type is TargetType.BROADCAST:
        return BROADCAST_KEY
    if not identifier:
        raise ValueError(f"{target_type.value} target key requires an identifier")
    return f"{target_type.value}{_SEPARATOR}{identifier}"


def target_key_for(target: Target) -> str:
    """Partition key of a target."""
    return build_target_key(target.target_type, target.identifier)


def parse_target_key(key: str) -> Target:
    """Inverse of build_target_key, used to route change notifications.

    Raises:
        ValueError: If the key is not a known target key.
    """
    if key == BROADCAST_KEY:
        return BroadcastTarget()
    prefix, sep, identifier = key.partition(_SEPARATOR)
    if not sep or not identifier:
        raise ValueError(f"Malformed target key: {key!r}")
    try:
        target_type = TargetType(prefix)
    except ValueError as e:
        raise ValueError(f"Unknown target type in key: {key!r}") from e
    match target_type:
        case TargetType.USER:
            return UserTarget(user_id=identifier)
        case TargetType.CLIENT:
            return ClientTarget(client_id=identifier)
        case TargetType.CHANNEL:
            return ChannelTarget(channel_id=identifier)
        case TargetType.BROADCAST:
            raise ValueError(f"Broadcast key takes no identifier: {key!r}")
        case _:
            assert_never(target_type)
