"""Generic coercion utilities shared across the restream codebase."""
from __future__ import annotations

from typing import Any, Optional, Tuple


def to_bool(value: Any, *, allow_blank_false: bool = True) -> bool:
    """Best-effort conversion of common truthy/falsey inputs to ``bool``."""

    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        truthy = {"true", "1", "yes", "on"}
        falsy = {"false", "0", "no", "off"}
        if allow_blank_false:
            falsy.add("")
        if lowered in truthy:
            return True
        if lowered in falsy:
            return False
    return False


def to_optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def coerce_int(value: Any, fallback: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def coerce_float(value: Any, fallback: float) -> float:
    candidate = to_optional_float(value)
    return fallback if candidate is None else candidate


def to_destination_list(value: Any) -> Tuple[str, ...]:
    """Normalise a ``set_rtmp_urls`` payload into a tuple of non-blank strings."""

    if value is None:
        return ()
    if isinstance(value, (str, bytes)):
        items: Tuple[Any, ...] = (value,)
    elif isinstance(value, (list, tuple)):
        items = tuple(value)
    else:
        return ()
    destinations = []
    for item in items:
        if item is None:
            continue
        if isinstance(item, bytes):
            item = item.decode("utf-8", errors="replace")
        text = str(item).strip()
        if text:
            destinations.append(text)
    return tuple(destinations)


__all__ = [
    "coerce_float",
    "coerce_int",
    "to_bool",
    "to_destination_list",
    "to_optional_float",
]
