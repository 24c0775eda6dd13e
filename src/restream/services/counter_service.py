"""In-process live counter exposed over HTTP."""
from __future__ import annotations

import threading


class CounterService:
    """Thread-safe integer counter."""

    def __init__(self, initial: int = 0) -> None:
        self._value = int(initial)
        self._lock = threading.Lock()

    def increment(self, step: int = 1) -> int:
        with self._lock:
            self._value += step
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


__all__ = ["CounterService"]
