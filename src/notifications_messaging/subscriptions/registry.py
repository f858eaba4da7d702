"""Subscription registry: validated, compiled, immutable subscriptions.

Configuration is parsed with the pydantic schema in ``schema.py`` and every
computed field is compiled exactly once here. Anything malformed raises
ConfigError with the path of the offending entry; a worker must not start
with a partially loaded registry.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic import ValidationError

from notifications_messaging.exceptions import ConfigError
from notifications_messaging.models.field_value import ComputedValue, FieldValue, LiteralValue
from notifications_messaging.models.subscription import (
    DetailFilter,
    EventPattern,
    RecordKind,
    Subscription,
    Template,
)
from notifications_messaging.subscriptions.schema import (
    EventPatternConfig,
    ExprSpec,
    SubscriptionConfig,
    SubscriptionsConfig,
    TemplateConfig,
)
from notifications_messaging.templates.expressions import compile_expression
from notifications_messaging.templates.transforms import DEFAULT_TRANSFORMS, TransformRegistry

# Template attribute -> configuration key used in error paths
_FIELD_KEYS: tuple[tuple[str, str], ...] = (
    ("title", "title"),
    ("content", "content"),
    ("user_id", "userId"),
    ("client_id", "clientId"),
    ("channel_id", "channelId"),
    ("sender_id", "senderId"),
    ("target_user_ids", "targetUserIds"),
    ("target_client_ids", "targetClientIds"),
    ("metadata", "metadata"),
    ("icon", "icon"),
    ("category", "category"),
    ("action_url", "actionUrl"),
    ("tags", "tags"),
    ("display_duration", "displayDuration"),
    ("sound", "sound"),
)

_SCALAR_TYPES = (str, int, float, bool)


def _parse_config(config: Any) -> SubscriptionsConfig:
    if isinstance(config, SubscriptionsConfig):
        return config
    if isinstance(config, Sequence) and not isinstance(config, (str, bytes)):
        config = {"subscriptions": list(config)}
    if not isinstance(config, Mapping):
        raise ConfigError(
            f"expected a list of subscriptions or a mapping, got {type(config).__name__}"
        )
    try:
        return SubscriptionsConfig.model_validate(config)
    except ValidationError as e:
        raise ConfigError(f"invalid subscription configuration: {e}") from e


def _compile_detail_filter(raw: Mapping[str, Any], path: str) -> DetailFilter:
    if not raw:
        raise ConfigError("detail filter must not be empty", path=path)
    compiled: dict[str, Any] = {}
    for key, allowed in raw.items():
        key_path = f"{path}.{key}"
        if isinstance(allowed, Mapping):
            compiled[key] = _compile_detail_filter(allowed, key_path)
            continue
        if isinstance(allowed, (str, bytes)) or not isinstance(allowed, Sequence):
            raise ConfigError("filter values must be a list of scalars", path=key_path)
        if not allowed:
            raise ConfigError("filter value list must not be empty", path=key_path)
        for value in allowed:
            if value is not None and not isinstance(value, _SCALAR_TYPES):
                raise ConfigError(
                    f"filter values must be scalars, got {type(value).__name__}",
                    path=key_path,
                )
        compiled[key] = tuple(allowed)
    return MappingProxyType(compiled)


def _compile_pattern(config: EventPatternConfig, path: str) -> EventPattern:
    for name, values in (("source", config.source), ("detailType", config.detail_type)):
        for value in values:
            if not value.strip():
                raise ConfigError(f"{name} entries must be non-empty", path=f"{path}.{name}")
    detail = (
        _compile_detail_filter(config.detail, f"{path}.detail")
        if config.detail is not None
        else None
    )
    return EventPattern(
        sources=frozenset(config.source),
        detail_types=frozenset(config.detail_type),
        detail=detail,
    )


def _reject_nested_expr(raw: Any, path: str) -> None:
    """Raise ConfigError when a literal mapping or list contains an ``expr`` key."""
    if isinstance(raw, dict):
        if "expr" in raw:
            raise ConfigError(
                "expressions are only allowed as a whole field value, not inside a literal",
                path=path,
            )
        for key, value in raw.items():
            _reject_nested_expr(value, f"{path}.{key}")
    elif isinstance(raw, list):
        for index, value in enumerate(raw):
            _reject_nested_expr(value, f"{path}[{index}]")


def _literal(raw: Any) -> Any:
    if isinstance(raw, dict):
        return MappingProxyType(dict(raw))
    if isinstance(raw, list):
        return tuple(raw)
    return raw


def _compile_field(
    raw: Any,
    *,
    attr: str,
    path: str,
    transforms: TransformRegistry,
) -> FieldValue[Any] | None:
    if raw is None:
        return None
    if isinstance(raw, ExprSpec):
        try:
            fn = compile_expression(raw.expr, transforms=transforms)
        except ConfigError as e:
            raise ConfigError(str(e), path=path) from e
        return ComputedValue(source=raw.expr, fn=fn)
    if attr.endswith("_id") and isinstance(raw, int):
        return LiteralValue(str(raw))
    _reject_nested_expr(raw, path)
    return LiteralValue(_literal(raw))


def _compile_template(
    config: TemplateConfig,
    *,
    kind: RecordKind,
    path: str,
    transforms: TransformRegistry,
) -> Template:
    if kind is RecordKind.NOTIFICATION and config.title is None:
        raise ConfigError("notification templates require a title", path=path)
    if kind is RecordKind.MESSAGE and config.content is None:
        raise ConfigError("message templates require content", path=path)
    fields = {
        attr: _compile_field(
            getattr(config, attr),
            attr=attr,
            path=f"{path}.{key}",
            transforms=transforms,
        )
        for attr, key in _FIELD_KEYS
    }
    return Template(
        kind=kind,
        target_type=config.target_type,
        priority=config.priority,
        **fields,
    )


def _compile_subscription(
    config: SubscriptionConfig,
    *,
    path: str,
    transforms: TransformRegistry,
) -> Subscription:
    pattern = _compile_pattern(config.event_pattern, f"{path}.eventPattern")
    mappings: dict[RecordKind, dict[str, Template]] = {}
    for kind, key, mapping in (
        (RecordKind.NOTIFICATION, "notificationMapping", config.notification_mapping),
        (RecordKind.MESSAGE, "messageMapping", config.message_mapping),
    ):
        compiled: dict[str, Template] = {}
        for detail_type, template in mapping.items():
            template_path = f"{path}.{key}.{detail_type}"
            if detail_type not in pattern.detail_types:
                raise ConfigError(
                    "mapping key is not one of the pattern's detail types",
                    path=template_path,
                )
            compiled[detail_type] = _compile_template(
                template, kind=kind, path=template_path, transforms=transforms
            )
        mappings[kind] = compiled
    return Subscription(
        name=config.name,
        description=config.description,
        event_pattern=pattern,
        notification_mapping=MappingProxyType(mappings[RecordKind.NOTIFICATION]),
        message_mapping=MappingProxyType(mappings[RecordKind.MESSAGE]),
    )


def load_subscriptions(
    config: Any,
    *,
    transforms: TransformRegistry = DEFAULT_TRANSFORMS,
) -> list[Subscription]:
    """Validate configuration and compile it into subscriptions.

    Args:
        config: A list of subscription mappings, a ``{"subscriptions": [...]}``
            mapping, or an already-parsed SubscriptionsConfig.
        transforms: Named transforms callable from expressions.

    Returns:
        Subscriptions in configuration order.

    Raises:
        ConfigError: If any pattern, template or expression is malformed, or a
            subscription name is repeated.
    """
    parsed = _parse_config(config)
    subscriptions: list[Subscription] = []
    seen: set[str] = set()
    for index, entry in enumerate(parsed.subscriptions):
        path = f"subscriptions[{index}]"
        if entry.name in seen:
            raise ConfigError(f"duplicate subscription name '{entry.name}'", path=path)
        seen.add(entry.name)
        subscriptions.append(_compile_subscription(entry, path=path, transforms=transforms))
    return subscriptions


class SubscriptionRegistry:
    """Immutable, ordered set of compiled subscriptions.

    Built once per worker at cold start and shared read-only afterwards.
    """

    __slots__ = ("_by_name", "_subscriptions")

    def __init__(self, subscriptions: Sequence[Subscription] = ()) -> None:
        self._subscriptions: tuple[Subscription, ...] = tuple(subscriptions)
        self._by_name = MappingProxyType({s.name: s for s in self._subscriptions})
        if len(self._by_name) != len(self._subscriptions):
            raise ConfigError("subscription names must be unique")

    @classmethod
    def load(
        cls,
        config: Any,
        *,
        transforms: TransformRegistry = DEFAULT_TRANSFORMS,
    ) -> SubscriptionRegistry:
        """Build a registry from parsed configuration (see load_subscriptions)."""
        return cls(load_subscriptions(config, transforms=transforms))

    @classmethod
    def from_json(
        cls,
        text: str,
        *,
        transforms: TransformRegistry = DEFAULT_TRANSFORMS,
    ) -> SubscriptionRegistry:
        """Build a registry from an inline JSON document."""
        try:
            config = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"subscription JSON is not valid: {e}") from e
        return cls.load(config, transforms=transforms)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        *,
        transforms: TransformRegistry = DEFAULT_TRANSFORMS,
    ) -> SubscriptionRegistry:
        """Build a registry from a YAML or JSON file.

        Raises:
            ConfigError: If the file cannot be read or parsed, or its content is invalid.
        """
        config_path = Path(path)
        try:
            text = config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"cannot read subscription file: {e}", path=str(config_path)) from e
        try:
            config = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML: {e}", path=str(config_path)) from e
        if config is None:
            config = []
        return cls.load(config, transforms=transforms)

    @property
    def subscriptions(self) -> tuple[Subscription, ...]:
        return self._subscriptions

    @property
    def names(self) -> list[str]:
        return [s.name for s in self._subscriptions]

    def get(self, name: str) -> Subscription | None:
        return self._by_name.get(name)

    def __iter__(self) -> Iterator[Subscription]:
        return iter(self._subscriptions)

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __repr__(self) -> str:
        return f"SubscriptionRegistry(names={self.names!r})"
