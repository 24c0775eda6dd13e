"""Process-local table of active streaming sessions."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol, Sequence

from .handle import ProcessHandle


class Stoppable(Protocol):
    def stop(self) -> None:
        ...


@dataclass
class SessionEntry:
    """Registry record for one session: its process plus simulated platform state."""

    session_id: str
    handle: ProcessHandle
    destinations: tuple[str, ...]
    viewer_counts: Dict[str, int] = field(default_factory=dict)
    chat_log: List[Dict[str, Any]] = field(default_factory=list)
    simulation: Optional[Stoppable] = None

    def snapshot(self) -> dict[str, Any]:
        payload = self.handle.snapshot()
        payload["destinations"] = list(self.destinations)
        payload["viewer_counts"] = dict(self.viewer_counts)
        return payload


class _KeyLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class SessionRegistry:
    """Map session ids to their :class:`SessionEntry`.

    Single operations are atomic under an internal lock. Multi-step
    operations on one session (replace, stop) are sequenced by holding
    :meth:`session_lock` for that key; different keys never contend.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, SessionEntry] = {}
        self._key_locks: Dict[str, _KeyLock] = {}

    @contextmanager
    def session_lock(self, session_id: str) -> Iterator[None]:
        with self._lock:
            key_lock = self._key_locks.get(session_id)
            if key_lock is None:
                key_lock = _KeyLock()
                self._key_locks[session_id] = key_lock
            key_lock.holders += 1
        key_lock.lock.acquire()
        try:
            yield
        finally:
            key_lock.lock.release()
            with self._lock:
                key_lock.holders -= 1
                if key_lock.holders == 0 and self._key_locks.get(session_id) is key_lock:
                    del self._key_locks[session_id]

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get(self, session_id: str) -> Optional[SessionEntry]:
        with self._lock:
            return self._entries.get(session_id)

    def handle_for(self, session_id: str) -> Optional[ProcessHandle]:
        entry = self.get(session_id)
        return entry.handle if entry else None

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def snapshot(self) -> list[dict[str, Any]]:
        with self._lock:
            entries = list(self._entries.values())
        return [entry.snapshot() for entry in entries]

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def put(self, entry: SessionEntry) -> Optional[SessionEntry]:
        with self._lock:
            previous = self._entries.get(entry.session_id)
            self._entries[entry.session_id] = entry
            return previous

    def pop(self, session_id: str) -> Optional[SessionEntry]:
        with self._lock:
            return self._entries.pop(session_id, None)

    def discard_if(self, session_id: str, handle: ProcessHandle) -> Optional[SessionEntry]:
        """Remove the entry only while it still owns ``handle``."""

        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None or entry.handle is not handle:
                return None
            del self._entries[session_id]
            return entry

    def record_activity(
        self,
        session_id: str,
        viewer_counts: Mapping[str, int],
        chat_log: Sequence[Mapping[str, Any]],
    ) -> bool:
        """Store simulated viewer/chat state; ignored once the session is gone."""

        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                return False
            entry.viewer_counts = dict(viewer_counts)
            entry.chat_log = [dict(record) for record in chat_log]
            return True


__all__ = ["SessionEntry", "SessionRegistry", "Stoppable"]
