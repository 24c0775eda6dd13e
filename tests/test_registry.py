from __future__ import annotations

import threading
import time
from typing import Any

from restream.engine import SessionEntry, SessionRegistry
from restream.utils import to_destination_list


class _FakeHandle:
    def __init__(self, session_id: str) -> None:
        self.session_id = session_id

    def snapshot(self) -> dict[str, Any]:
        return {"session_id": self.session_id, "pid": 1234, "state": "running"}


def _entry(session_id: str, handle: Any = None) -> SessionEntry:
    return SessionEntry(
        session_id=session_id,
        handle=handle or _FakeHandle(session_id),
        destinations=("rtmp://a.example/live/1",),
    )


def test_put_get_pop() -> None:
    registry = SessionRegistry()
    entry = _entry("abc")

    assert registry.put(entry) is None
    assert "abc" in registry
    assert len(registry) == 1
    assert registry.get("abc") is entry
    assert registry.handle_for("abc") is entry.handle
    assert registry.pop("abc") is entry
    assert registry.pop("abc") is None
    assert registry.handle_for("abc") is None


def test_discard_if_only_removes_matching_handle() -> None:
    registry = SessionRegistry()
    stale = _FakeHandle("abc")
    current = _entry("abc")
    registry.put(current)

    assert registry.discard_if("abc", stale) is None
    assert registry.get("abc") is current
    assert registry.discard_if("abc", current.handle) is current
    assert "abc" not in registry


def test_record_activity_requires_live_entry() -> None:
    registry = SessionRegistry()
    registry.put(_entry("abc"))

    chats = [{"platform": "Twitch", "user": "User_1", "message": "hi", "timestamp": "12:00:00"}]
    assert registry.record_activity("abc", {"Twitch": 75}, chats) is True
    assert registry.record_activity("gone", {"Twitch": 75}, chats) is False

    snapshot = registry.snapshot()[0]
    assert snapshot["viewer_counts"] == {"Twitch": 75}
    assert snapshot["destinations"] == ["rtmp://a.example/live/1"]
    assert registry.get("abc").chat_log == chats


def test_session_lock_serialises_same_key_only() -> None:
    registry = SessionRegistry()
    order: list[str] = []
    holding = threading.Event()

    def _hold() -> None:
        with registry.session_lock("abc"):
            holding.set()
            time.sleep(0.2)
            order.append("first")

    worker = threading.Thread(target=_hold)
    worker.start()
    assert holding.wait(2)

    with registry.session_lock("other"):
        order.append("other")
    with registry.session_lock("abc"):
        order.append("second")
    worker.join(timeout=2)

    assert order == ["other", "first", "second"]


def test_destination_payload_normalisation() -> None:
    assert to_destination_list(" rtmp://a/live/1 ") == ("rtmp://a/live/1",)
    assert to_destination_list(["rtmp://a/1", "", None, b"rtmp://b/2"]) == ("rtmp://a/1", "rtmp://b/2")
    assert to_destination_list({"url": "rtmp://a/1"}) == ()
    assert to_destination_list(None) == ()
