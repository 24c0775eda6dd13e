from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from conftest import wait_until
from restream.engine import ExitInfo, HandleState, ProcessHandle, WriteOutcome
from restream.exceptions import ProcessNotRunning, ProcessSpawnError, RestreamError


def _cat_command(path: Path) -> list[str]:
    return ["sh", "-c", 'exec cat > "$0"', str(path)]


def test_chunks_reach_stdin_in_order_and_unmodified(tmp_path: Path) -> None:
    target = tmp_path / "out.bin"
    handle = ProcessHandle.spawn("s1", _cat_command(target))
    chunks = [b"\x00first", b"second-chunk" * 100, b"", b"\xff\xfelast"]

    for chunk in chunks:
        assert handle.write(chunk) in {WriteOutcome.ACCEPTED, WriteOutcome.DRAINING}
    handle.close_input()

    assert handle.wait(5) == 0
    assert target.read_bytes() == b"".join(chunks)
    assert handle.state is HandleState.EXITED


def test_write_after_close_is_rejected(tmp_path: Path) -> None:
    handle = ProcessHandle.spawn("s1", _cat_command(tmp_path / "out.bin"))
    handle.close_input()

    with pytest.raises(ProcessNotRunning):
        handle.write(b"late")

    assert handle.wait(5) == 0


def test_write_after_exit_is_reported_not_raised_as_crash() -> None:
    handle = ProcessHandle.spawn("s1", ["sh", "-c", "exit 0"])
    assert handle.wait(5) == 0

    with pytest.raises(RestreamError):
        handle.write(b"too late")


def test_spawn_failure_raises_spawn_error() -> None:
    with pytest.raises(ProcessSpawnError):
        ProcessHandle.spawn("s1", ["/nonexistent/ffmpeg-binary"])


def test_exit_callback_fires_once_with_exit_code() -> None:
    calls: list[ExitInfo] = []
    handle = ProcessHandle.spawn(
        "s1",
        ["sh", "-c", "echo 'Error opening output rtmp://nowhere' >&2; exit 3"],
        on_exit=lambda _handle, info: calls.append(info),
    )

    assert handle.wait(5) == 3
    assert wait_until(lambda: len(calls) == 1)
    info = calls[0]
    assert info.code == 3
    assert info.signal_name is None
    detail = info.to_detail()
    assert detail["code"] == 3
    assert any("Error opening output" in line for line in detail["log_tail"])


def test_kill_reports_signal_name() -> None:
    handle = ProcessHandle.spawn("s1", ["sleep", "30"])
    assert handle.kill() is True
    assert handle.wait(5) == -9
    info = handle.exit_info
    assert info is not None
    assert info.code is None
    assert info.signal_name == "SIGKILL"
    assert handle.kill() is False


def test_scheduled_kill_is_cancelled_by_normal_exit(tmp_path: Path) -> None:
    handle = ProcessHandle.spawn("s1", _cat_command(tmp_path / "out.bin"))
    handle.schedule_kill(0.5)
    handle.close_input()

    assert handle.wait(5) == 0
    time.sleep(0.7)
    assert handle.exit_info is not None
    assert handle.exit_info.returncode == 0


def test_scheduled_kill_fires_when_process_ignores_eof() -> None:
    handle = ProcessHandle.spawn("s1", ["sh", "-c", "trap '' INT; exec sleep 30"])
    handle.close_input()
    handle.schedule_kill(0.2)

    assert handle.wait(5) == -9


def test_full_queue_reports_draining_then_stall() -> None:
    big_chunk = b"x" * (256 * 1024)
    handle = ProcessHandle.spawn("s1", ["sleep", "30"], max_queued_chunks=2, high_watermark=2)
    outcomes: list[WriteOutcome] = []
    stalls: list[float] = []
    errors: list[BaseException] = []

    def _producer() -> None:
        try:
            for _ in range(10):
                outcomes.append(handle.write(big_chunk, stall_after=0.2, on_stall=stalls.append))
        except RestreamError as exc:
            errors.append(exc)

    producer = threading.Thread(target=_producer, daemon=True)
    producer.start()

    assert wait_until(lambda: len(stalls) == 1)
    assert WriteOutcome.DRAINING in outcomes
    assert len(outcomes) < 10
    assert handle.queued_chunks == 2

    handle.kill()
    producer.join(timeout=5)

    assert not producer.is_alive()
    assert len(errors) == 1
    assert len(stalls) == 1


def test_signal_to_exited_process_is_not_escalated() -> None:
    handle = ProcessHandle.spawn("s1", ["sh", "-c", "exit 0"])
    assert handle.wait(5) == 0

    assert handle.interrupt() is False
    handle.schedule_kill(0.01)


def test_close_during_writes_never_strands_an_accepted_chunk(tmp_path: Path) -> None:
    target = tmp_path / "out.bin"
    handle = ProcessHandle.spawn("s1", _cat_command(target), max_queued_chunks=4)
    accepted: list[bytes] = []
    rejected: list[BaseException] = []

    def _producer() -> None:
        index = 0
        while True:
            chunk = f"<{index}>".encode()
            try:
                handle.write(chunk)
            except RestreamError as exc:
                rejected.append(exc)
                return
            accepted.append(chunk)
            index += 1

    producer = threading.Thread(target=_producer, daemon=True)
    producer.start()
    assert wait_until(lambda: len(accepted) >= 200)
    handle.close_input()
    producer.join(timeout=5)

    assert not producer.is_alive()
    assert isinstance(rejected[0], ProcessNotRunning)
    assert handle.wait(5) == 0
    assert target.read_bytes() == b"".join(accepted)
