"""HTTP route blueprints for the restream service."""
from __future__ import annotations

from .counter import COUNTER_BLUEPRINT
from .status import STATUS_BLUEPRINT

API_BLUEPRINTS = [
    STATUS_BLUEPRINT,
    COUNTER_BLUEPRINT,
]

__all__ = ["API_BLUEPRINTS"]
