"""Service layer for the restream relay."""
from __future__ import annotations

from .counter_service import CounterService
from .platform_simulator import PLATFORM_VIEWER_COUNTS, PlatformSimulator, classify_destination

__all__ = [
    "CounterService",
    "PLATFORM_VIEWER_COUNTS",
    "PlatformSimulator",
    "classify_destination",
]
