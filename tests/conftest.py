from __future__ import annotations

import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, Sequence

import pytest

os.environ.setdefault("RESTREAM_LOG_DIR", tempfile.mkdtemp(prefix="restream-logs-"))

from restream.engine import (  # noqa: E402
    STREAM_STATUS_EVENT,
    SessionNotifier,
    StopStrategy,
    StreamRelay,
    StreamSupervisor,
)


class RecordingSink:
    """Collects emitted events instead of sending them to a socket."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.events: list[tuple[str, str, Any]] = []

    def emit(self, session_id: str, event: str, payload: Any) -> None:
        with self._lock:
            self.events.append((session_id, event, payload))

    def for_session(self, session_id: str, event: str | None = None) -> list[Any]:
        with self._lock:
            return [
                payload
                for sid, name, payload in self.events
                if sid == session_id and (event is None or name == event)
            ]

    def statuses(self, session_id: str) -> list[dict[str, Any]]:
        return self.for_session(session_id, STREAM_STATUS_EVENT)


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def cat_to_file(destinations: Sequence[str]) -> list[str]:
    """Stand-in for FFmpeg: copy stdin verbatim into the first destination path."""

    return ["sh", "-c", 'exec cat > "$0"', destinations[0]]


def sleeper(_destinations: Sequence[str]) -> list[str]:
    return ["sleep", "30"]


def stubborn_sleeper(_destinations: Sequence[str]) -> list[str]:
    """A process that ignores SIGINT and never reads stdin."""

    return ["sh", "-c", "trap '' INT; exec sleep 30"]


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def make_supervisor(sink: RecordingSink):
    created: list[StreamSupervisor] = []

    def _factory(command_builder: Callable[[Sequence[str]], Sequence[str]] = cat_to_file, **kwargs: Any) -> StreamSupervisor:
        kwargs.setdefault("stop_strategy", StopStrategy(stop_grace=0.5, replace_grace=2.0, kill_timeout=2.0))
        supervisor = StreamSupervisor(
            notifier=SessionNotifier(sink),
            command_builder=command_builder,
            **kwargs,
        )
        created.append(supervisor)
        return supervisor

    yield _factory

    for supervisor in created:
        supervisor.shutdown(1.0)


@pytest.fixture()
def make_relay():
    def _factory(supervisor: StreamSupervisor, stall_seconds: float | None = 5.0) -> StreamRelay:
        return StreamRelay(supervisor, stall_seconds=stall_seconds)

    return _factory


@pytest.fixture()
def output_path(tmp_path: Path) -> Path:
    return tmp_path / "relay.bin"
