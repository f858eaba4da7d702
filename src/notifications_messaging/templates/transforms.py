"""Named pure transforms callable from template expressions.

The table is the only way an expression can call a function. Transforms take
plain values and return plain values; none of them performs I/O or reads the
clock.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

type Transform = Callable[..., Any]


class TransformRegistry(Mapping[str, Transform]):
    """Immutable name -> transform lookup table.

    Build variants with ``extended``; the default table is never mutated.
    """

    def __init__(self, transforms: Mapping[str, Transform] | None = None) -> None:
        self._transforms: Mapping[str, Transform] = MappingProxyType(dict(transforms or {}))

    def __getitem__(self, name: str) -> Transform:
        return self._transforms[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._transforms)

    def __len__(self) -> int:
        return len(self._transforms)

    def extended(self, transforms: Mapping[str, Transform]) -> TransformRegistry:
        """Return a new registry with ``transforms`` added (overriding same names)."""
        merged = dict(self._transforms)
        merged.update(transforms)
        return TransformRegistry(merged)


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _default(value: Any, fallback: Any) -> Any:
    """fallback when value is None or an empty string/collection."""
    if value is None:
        return fallback
    if isinstance(value, (str, list, tuple, dict)) and not value:
        return fallback
    return value


def _coalesce(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _join(items: Iterable[Any] | None, separator: str = ", ") -> str:
    if items is None:
        return ""
    return separator.join(_str(item) for item in items)


def _split(value: str | None, separator: str = ",") -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(separator) if part.strip()]


def _get(mapping: Mapping[str, Any] | None, key: str, fallback: Any = None) -> Any:
    if mapping is None:
        return fallback
    return mapping.get(key, fallback)


def _pick(mapping: Mapping[str, Any] | None, *keys: str) -> dict[str, Any]:
    """Sub-mapping with only the given keys that are present."""
    if mapping is None:
        return {}
    return {k: mapping[k] for k in keys if k in mapping}


def _truncate(value: str | None, length: int, suffix: str = "...") -> str:
    text = _str(value)
    if len(text) <= length:
        return text
    return text[: max(0, length - len(suffix))] + suffix


def _lower(value: str | None) -> str:
    return _str(value).lower()


def _upper(value: str | None) -> str:
    return _str(value).upper()


def _strip(value: str | None) -> str:
    return _str(value).strip()


def _title(value: str | None) -> str:
    return _str(value).title()


def _compact(items: Iterable[Any] | None) -> list[Any]:
    """List without None and empty strings."""
    if items is None:
        return []
    return [item for item in items if item is not None and item != ""]


DEFAULT_TRANSFORMS = TransformRegistry(
    {
        "str": _str,
        "int": int,
        "float": float,
        "bool": bool,
        "len": len,
        "round": round,
        "min": min,
        "max": max,
        "lower": _lower,
        "upper": _upper,
        "strip": _strip,
        "title": _title,
        "default": _default,
        "coalesce": _coalesce,
        "join": _join,
        "split": _split,
        "get": _get,
        "pick": _pick,
        "truncate": _truncate,
        "compact": _compact,
    }
)
