from __future__ import annotations

import random
from typing import Any, Mapping, Sequence

from conftest import RecordingSink, wait_until
from restream.engine import CHAT_UPDATE_EVENT, VIEWER_UPDATE_EVENT, SessionNotifier
from restream.services import PlatformSimulator, classify_destination


class _Recorder:
    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.calls: list[tuple[str, dict[str, int], list[Mapping[str, Any]]]] = []

    def __call__(self, session_id: str, counts: Mapping[str, int], chats: Sequence[Mapping[str, Any]]) -> bool:
        self.calls.append((session_id, dict(counts), list(chats)))
        return self.accept


def _simulator(sink: RecordingSink, recorder: _Recorder, destinations: Sequence[str], **kwargs: Any) -> PlatformSimulator:
    return PlatformSimulator(
        "abc",
        destinations,
        notifier=SessionNotifier(sink),
        record_activity=recorder,
        rng=random.Random(7),
        **kwargs,
    )


def test_classify_destination() -> None:
    assert classify_destination("rtmp://live.twitch.tv/app/key") == "Twitch"
    assert classify_destination("rtmp://a.rtmp.youtube.com/live2/key") == "YouTube"
    assert classify_destination("rtmps://live-api-s.facebook.com:443/rtmp/key") == "Facebook"
    assert classify_destination("rtmps://edgetee-upload.instagram.com:443/rtmp/key") == "Instagram"
    assert classify_destination("rtmp://example.org/live/key") == "Unknown"


def test_tick_emits_viewers_then_chat(sink: RecordingSink) -> None:
    recorder = _Recorder()
    simulator = _simulator(sink, recorder, ["rtmp://live.twitch.tv/app/k", "rtmp://example.org/live/k"])

    simulator.tick()

    events = [name for _sid, name, _payload in sink.events]
    assert events == [VIEWER_UPDATE_EVENT, CHAT_UPDATE_EVENT]
    assert sink.for_session("abc", VIEWER_UPDATE_EVENT) == [{"Twitch": 75, "Unknown": 10}]
    chats = sink.for_session("abc", CHAT_UPDATE_EVENT)[0]
    assert [record["platform"] for record in chats] == ["Twitch", "Unknown"]
    for record in chats:
        assert record["user"].startswith("User_")
        assert 0 <= int(record["user"].split("_", 1)[1]) < 1000
        assert record["message"] == f"Sample message from {record['platform']}"
        assert len(record["timestamp"]) == 8
    assert recorder.calls[0][1] == {"Twitch": 75, "Unknown": 10}


def test_chat_history_is_bounded(sink: RecordingSink) -> None:
    simulator = _simulator(sink, _Recorder(), ["rtmp://a.rtmp.youtube.com/live2/k"], history_limit=50)

    for _ in range(60):
        simulator.tick()

    latest = sink.for_session("abc", CHAT_UPDATE_EVENT)[-1]
    assert len(latest) == 50


def test_tick_is_silent_once_session_is_gone(sink: RecordingSink) -> None:
    simulator = _simulator(sink, _Recorder(accept=False), ["rtmp://live.twitch.tv/app/k"])

    simulator.tick()

    assert sink.events == []


def test_background_loop_runs_until_stopped(sink: RecordingSink) -> None:
    simulator = _simulator(sink, _Recorder(), ["rtmp://live.twitch.tv/app/k"], interval_seconds=0.05)

    simulator.start()
    try:
        assert simulator.running()
        assert wait_until(lambda: len(sink.for_session("abc", VIEWER_UPDATE_EVENT)) >= 2)
    finally:
        simulator.stop()

    assert not simulator.running()
    emitted = len(sink.events)
    assert wait_until(lambda: len(sink.events) == emitted, timeout=0.2)
