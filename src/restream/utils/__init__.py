"""Utility helpers shared across the restream service."""
from __future__ import annotations

from .coerce import coerce_float, coerce_int, to_bool, to_destination_list, to_optional_float

__all__ = [
    "coerce_float",
    "coerce_int",
    "to_bool",
    "to_destination_list",
    "to_optional_float",
]
