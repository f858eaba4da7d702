"""Pydantic schema of the subscription configuration document.

Keys are accepted in camelCase (``eventPattern``, ``detailType``,
``notificationMapping``, ``clientId``) or snake_case. A computed field is
written as ``{expr: "<expression>"}``; any other value is a literal.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

from notifications_messaging.models.subscription import Priority
from notifications_messaging.models.target import TargetType


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class ExprSpec(BaseModel):
    """Marker for a computed field: expression text evaluated against the payload."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    expr: StrictStr


# ExprSpec is tried first so {"expr": ...} never falls through to a dict literal
TextField = Annotated[ExprSpec | StrictStr, Field(union_mode="left_to_right")]
IdentifierField = Annotated[ExprSpec | StrictStr | StrictInt, Field(union_mode="left_to_right")]
StringListField = Annotated[ExprSpec | list[StrictStr], Field(union_mode="left_to_right")]
MappingField = Annotated[ExprSpec | dict[str, Any], Field(union_mode="left_to_right")]
IntField = Annotated[ExprSpec | StrictInt, Field(union_mode="left_to_right")]


class EventPatternConfig(_ConfigModel):
    """Exact-match event pattern."""

    source: list[StrictStr] = Field(min_length=1)
    detail_type: list[StrictStr] = Field(
        min_length=1,
        validation_alias=AliasChoices("detailType", "detail-type", "detail_type"),
    )
    detail: dict[str, Any] | None = None


class TemplateConfig(_ConfigModel):
    """One notification or message template."""

    target_type: TargetType
    title: TextField | None = None
    content: TextField | None = None
    priority: Priority = Priority.MEDIUM
    user_id: IdentifierField | None = None
    client_id: IdentifierField | None = None
    channel_id: IdentifierField | None = None
    sender_id: IdentifierField | None = None
    target_user_ids: StringListField | None = None
    target_client_ids: StringListField | None = None
    metadata: MappingField | None = None
    icon: TextField | None = None
    category: TextField | None = None
    action_url: TextField | None = None
    tags: StringListField | None = None
    display_duration: IntField | None = None
    sound: TextField | None = None


class SubscriptionConfig(_ConfigModel):
    """A named subscription: pattern plus templates keyed by detail type."""

    name: StrictStr = Field(min_length=1)
    description: str | None = None
    event_pattern: EventPatternConfig
    notification_mapping: dict[str, TemplateConfig] = Field(default_factory=dict)
    message_mapping: dict[str, TemplateConfig] = Field(default_factory=dict)


class SubscriptionsConfig(_ConfigModel):
    """Root document: an ordered list of subscriptions."""

    subscriptions: list[SubscriptionConfig] = Field(default_factory=list)
