"""Domain models."""

from notifications_messaging.models.event import InboundEvent
from notifications_messaging.models.field_value import (
    ComputedValue,
    FieldValue,
    LiteralValue,
    resolve_field,
)
from notifications_messaging.models.record import Record
from notifications_messaging.models.subscription import (
    EventPattern,
    Priority,
    RecordKind,
    Subscription,
    Template,
)
from notifications_messaging.models.target import (
    BroadcastTarget,
    ChannelTarget,
    ClientTarget,
    Target,
    TargetType,
    UserTarget,
)

__all__ = [
    "BroadcastTarget",
    "ChannelTarget",
    "ClientTarget",
    "ComputedValue",
    "EventPattern",
    "FieldValue",
    "InboundEvent",
    "LiteralValue",
    "Priority",
    "Record",
    "RecordKind",
    "Subscription",
    "Target",
    "TargetType",
    "Template",
    "UserTarget",
    "resolve_field",
]
