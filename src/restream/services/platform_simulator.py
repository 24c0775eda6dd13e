"""Simulated per-platform viewer counts and chat traffic for a live session."""
from __future__ import annotations

import logging
import random
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..engine.events import CHAT_UPDATE_EVENT, VIEWER_UPDATE_EVENT, SessionNotifier

LOGGER = logging.getLogger(__name__)

PLATFORM_VIEWER_COUNTS: Mapping[str, int] = {
    "Instagram": 30,
    "YouTube": 3000,
    "Facebook": 49,
    "Twitch": 75,
    "Unknown": 10,
}

_PLATFORM_MARKERS = (
    ("instagram", "Instagram"),
    ("youtube", "YouTube"),
    ("facebook", "Facebook"),
    ("twitch", "Twitch"),
)

ActivityRecorder = Callable[[str, Mapping[str, int], Sequence[Mapping[str, Any]]], bool]


def classify_destination(destination: str) -> str:
    """Return the platform a destination URL points at, or ``Unknown``."""

    for marker, platform in _PLATFORM_MARKERS:
        if marker in destination:
            return platform
    return "Unknown"


class PlatformSimulator:
    """Emit fixed viewer counts and sample chat lines for one session."""

    def __init__(
        self,
        session_id: str,
        destinations: Sequence[str],
        *,
        notifier: SessionNotifier,
        record_activity: ActivityRecorder,
        interval_seconds: float = 5.0,
        history_limit: int = 50,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.session_id = session_id
        self._destinations = tuple(destinations)
        self._notifier = notifier
        self._record_activity = record_activity
        self._history_limit = max(1, int(history_limit))
        self._rng = rng or random.Random()
        self._chat_log: List[Dict[str, Any]] = []
        self._interval = max(0.05, float(interval_seconds))
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        thread = self._thread
        if thread and thread.is_alive():
            return
        self._stop_event.clear()
        thread = threading.Thread(target=self._run, name=f"platform-sim-{self.session_id}", daemon=True)
        self._thread = thread
        thread.start()

    def stop(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        if thread.is_alive():
            thread.join(timeout=2.0)
        self._thread = None

    def running(self) -> bool:
        thread = self._thread
        return bool(thread and thread.is_alive())

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.tick()
            except Exception:
                LOGGER.exception("Simulated platform update failed for %s", self.session_id)

    def tick(self) -> None:
        counts: Dict[str, int] = {}
        timestamp = datetime.now().strftime("%H:%M:%S")
        for destination in self._destinations:
            platform = classify_destination(destination)
            counts[platform] = PLATFORM_VIEWER_COUNTS.get(platform, PLATFORM_VIEWER_COUNTS["Unknown"])
            self._chat_log.append(
                {
                    "platform": platform,
                    "user": f"User_{self._rng.randrange(1000)}",
                    "message": f"Sample message from {platform}",
                    "timestamp": timestamp,
                }
            )
        self._chat_log = self._chat_log[-self._history_limit :]
        chats = [dict(record) for record in self._chat_log]

        if not self._record_activity(self.session_id, counts, chats):
            LOGGER.debug("Session %s no longer registered; skipping simulated update", self.session_id)
            return
        self._notifier.send(self.session_id, VIEWER_UPDATE_EVENT, counts)
        self._notifier.send(self.session_id, CHAT_UPDATE_EVENT, chats)


__all__ = ["PLATFORM_VIEWER_COUNTS", "PlatformSimulator", "classify_destination"]
