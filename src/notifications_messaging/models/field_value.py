"""Template field values: a literal, or a value computed from the event payload."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

type Payload = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class LiteralValue[T]:
    """A constant. Resolution ignores the payload."""

    value: T

    def resolve(self, payload: Payload) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class ComputedValue[T]:
    """A pure function of the payload, compiled once from ``source``."""

    source: str
    """Expression text as written in configuration (kept for logs and errors)."""
    fn: Callable[[Payload], T] = field(compare=False, repr=False)

    def resolve(self, payload: Payload) -> T:
        return self.fn(payload)


type FieldValue[T] = LiteralValue[T] | ComputedValue[T]


def resolve_field[T](value: FieldValue[T] | None, payload: Payload) -> T | None:
    """Resolve an optional field value against a payload. None stays None."""
    if value is None:
        return None
    return value.resolve(payload)
