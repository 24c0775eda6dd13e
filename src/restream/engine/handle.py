"""Owned wrapper around one running FFmpeg process and its pipes."""
from __future__ import annotations

import io
import logging
import queue
import signal
import subprocess
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from ..exceptions import ProcessNotRunning, ProcessSpawnError, RelayWriteError

LOGGER = logging.getLogger(__name__)

_POLL_INTERVAL = 0.1
_NOTABLE_MARKERS = ("Error", "warning", "Opening", "frame=")


class HandleState(str, Enum):
    RUNNING = "running"
    EXITING = "exiting"
    EXITED = "exited"


class WriteOutcome(str, Enum):
    ACCEPTED = "accepted"
    DRAINING = "draining"


@dataclass(frozen=True)
class ExitInfo:
    """How the process ended: an exit code or the signal that killed it."""

    returncode: Optional[int]
    signal_name: Optional[str] = None
    log_tail: Sequence[str] = field(default_factory=tuple)

    @classmethod
    def from_returncode(cls, returncode: Optional[int], log_tail: Sequence[str] = ()) -> "ExitInfo":
        signal_name = None
        if returncode is not None and returncode < 0:
            try:
                signal_name = signal.Signals(-returncode).name
            except ValueError:
                signal_name = str(-returncode)
        return cls(returncode=returncode, signal_name=signal_name, log_tail=tuple(log_tail))

    @property
    def code(self) -> Optional[int]:
        if self.returncode is None or self.returncode < 0:
            return None
        return self.returncode

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"code": self.code, "signal": self.signal_name}
        if self.log_tail and self.code not in (None, 0):
            detail["log_tail"] = list(self.log_tail)
        return detail


ExitCallback = Callable[["ProcessHandle", ExitInfo], None]
WriteErrorCallback = Callable[["ProcessHandle", BaseException], None]
StallCallback = Callable[[float], None]


class ProcessHandle:
    """One FFmpeg process owned by a session.

    Chunks are queued into a bounded FIFO and written to stdin by a dedicated
    writer thread. Stderr is drained by a reader thread and the process exit
    is observed by a watcher thread that fires ``on_exit`` exactly once.
    """

    def __init__(
        self,
        session_id: str,
        process: subprocess.Popen,
        *,
        max_queued_chunks: int = 64,
        high_watermark: Optional[int] = None,
        on_exit: Optional[ExitCallback] = None,
        on_write_error: Optional[WriteErrorCallback] = None,
        stderr_tail: int = 20,
    ) -> None:
        self.session_id = session_id
        self._process = process
        capacity = max(1, int(max_queued_chunks))
        self._queue: "queue.Queue[bytes]" = queue.Queue(maxsize=capacity)
        watermark = capacity if high_watermark is None else int(high_watermark)
        self._high_watermark = min(capacity, max(1, watermark))
        self._on_exit = on_exit
        self._on_write_error = on_write_error
        self._lock = threading.Lock()
        self._space = threading.Condition(self._lock)
        self._state = HandleState.RUNNING
        self._input_closed = threading.Event()
        self._exited = threading.Event()
        self._exit_info: Optional[ExitInfo] = None
        self._write_error: Optional[BaseException] = None
        self._kill_timer: Optional[threading.Timer] = None
        self._stderr_tail: deque[str] = deque(maxlen=max(1, stderr_tail))
        self._threads: list[threading.Thread] = []
        self._stderr_thread: Optional[threading.Thread] = None
        self.started_at = datetime.now(timezone.utc)

    @classmethod
    def spawn(cls, session_id: str, command: Sequence[str], **kwargs: Any) -> "ProcessHandle":
        """Start ``command`` with piped stdin/stderr and begin supervising it."""

        try:
            process = subprocess.Popen(
                list(command),
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except (OSError, ValueError) as exc:
            raise ProcessSpawnError(str(exc)) from exc
        handle = cls(session_id, process, **kwargs)
        handle.start()
        return handle

    def start(self) -> None:
        if self._threads:
            return
        suffix = f"{self.session_id}:{self._process.pid}"
        writer = threading.Thread(target=self._write_loop, name=f"relay-writer-{suffix}", daemon=True)
        threads = [writer]
        if self._process.stderr is not None:
            reader = threading.Thread(target=self._read_stderr, name=f"ffmpeg-stderr-{suffix}", daemon=True)
            self._stderr_thread = reader
            threads.append(reader)
        watcher = threading.Thread(target=self._watch_exit, name=f"ffmpeg-exit-{suffix}", daemon=True)
        threads.append(watcher)
        self._threads = threads
        for thread in threads:
            thread.start()

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def state(self) -> HandleState:
        with self._lock:
            return self._state

    @property
    def running(self) -> bool:
        return self.state is HandleState.RUNNING

    @property
    def exited(self) -> bool:
        return self._exited.is_set()

    @property
    def exit_info(self) -> Optional[ExitInfo]:
        return self._exit_info

    @property
    def queued_chunks(self) -> int:
        return self._queue.qsize()

    def stderr_tail(self) -> list[str]:
        return list(self._stderr_tail)

    def snapshot(self) -> dict[str, Any]:
        info = self._exit_info
        return {
            "session_id": self.session_id,
            "pid": self.pid,
            "state": self.state.value,
            "queued_chunks": self.queued_chunks,
            "started_at": self.started_at.isoformat(),
            "returncode": info.returncode if info else None,
        }

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------
    def write(
        self,
        chunk: bytes,
        *,
        stall_after: Optional[float] = None,
        on_stall: Optional[StallCallback] = None,
    ) -> WriteOutcome:
        """Queue ``chunk`` for stdin, blocking while the queue is full.

        ``on_stall`` fires once if the queue stays full for ``stall_after``
        seconds; the write keeps waiting until the chunk is accepted or the
        handle stops running.
        """

        started = time.monotonic()
        stalled = False
        while True:
            # The state check and the enqueue share the lock with close_input,
            # so nothing lands in the queue once the writer may have finished.
            with self._space:
                self._check_writable()
                if not self._queue.full():
                    self._queue.put_nowait(chunk)
                    depth = self._queue.qsize()
                    break
                self._space.wait(_POLL_INTERVAL)
            waited = time.monotonic() - started
            if not stalled and stall_after is not None and waited >= stall_after:
                stalled = True
                LOGGER.warning(
                    "Input queue for %s full for %.1fs (pid=%s)",
                    self.session_id,
                    waited,
                    self.pid,
                )
                if on_stall is not None:
                    on_stall(waited)
        if depth >= self._high_watermark:
            LOGGER.debug("Buffer full for %s, waiting for drain", self.session_id)
            return WriteOutcome.DRAINING
        return WriteOutcome.ACCEPTED

    def close_input(self) -> None:
        """Signal end-of-input; queued chunks are flushed before stdin closes."""

        with self._space:
            if self._state is HandleState.RUNNING:
                self._state = HandleState.EXITING
            self._input_closed.set()
            self._space.notify_all()

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------
    def interrupt(self) -> bool:
        return self.send_signal(signal.SIGINT)

    def kill(self) -> bool:
        return self.send_signal(signal.SIGKILL)

    def send_signal(self, sig: int) -> bool:
        if self._exited.is_set():
            LOGGER.debug("Process for %s already exited; skipping signal %s", self.session_id, sig)
            return False
        try:
            self._process.send_signal(sig)
        except (ProcessLookupError, OSError) as exc:
            LOGGER.warning("Failed to signal FFmpeg for %s (pid=%s): %s", self.session_id, self.pid, exc)
            return False
        return True

    def schedule_kill(self, grace_seconds: float) -> None:
        """Force-kill the process unless it exits within ``grace_seconds``."""

        timer = threading.Timer(max(0.0, grace_seconds), self._force_kill)
        timer.daemon = True
        with self._lock:
            if self._exited.is_set():
                return
            previous = self._kill_timer
            self._kill_timer = timer
        if previous is not None:
            previous.cancel()
        timer.start()

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        if not self._exited.wait(timeout):
            return None
        info = self._exit_info
        return info.returncode if info else None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _check_writable(self) -> None:
        """Raise unless the handle accepts input; caller holds ``_lock``."""

        error = self._write_error
        if error is not None:
            raise RelayWriteError(str(error) or error.__class__.__name__)
        state = self._state
        if state is not HandleState.RUNNING:
            raise ProcessNotRunning(f"FFmpeg for {self.session_id} is {state.value}")

    def _force_kill(self) -> None:
        if self._exited.is_set():
            return
        LOGGER.warning("FFmpeg for %s still running after grace period; sending SIGKILL", self.session_id)
        self.kill()

    def _write_loop(self) -> None:
        stdin = self._process.stdin
        try:
            while True:
                try:
                    chunk = self._queue.get(timeout=_POLL_INTERVAL)
                except queue.Empty:
                    if self._exited.is_set():
                        break
                    if self._input_closed.is_set() and self._queue.empty():
                        break
                    continue
                with self._space:
                    self._space.notify()
                try:
                    stdin.write(chunk)
                    stdin.flush()
                except (OSError, ValueError) as exc:
                    self._fail_write(exc)
                    break
        finally:
            self._close_stdin()
            self._discard_pending()

    def _fail_write(self, exc: BaseException) -> None:
        with self._lock:
            if self._write_error is not None:
                return
            self._write_error = exc
            was_running = self._state is HandleState.RUNNING
            if was_running:
                self._state = HandleState.EXITING
            self._space.notify_all()
        if not was_running:
            LOGGER.debug("FFmpeg input for %s closed during shutdown: %s", self.session_id, exc)
            return
        LOGGER.warning("Error writing to FFmpeg for %s: %s", self.session_id, exc)
        callback = self._on_write_error
        if callback is None:
            return
        try:
            callback(self, exc)
        except Exception:
            LOGGER.exception("Write error callback failed for %s", self.session_id)

    def _discard_pending(self) -> None:
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            dropped += 1
        if dropped:
            LOGGER.info("Discarded %d queued chunk(s) for %s after input closed", dropped, self.session_id)

    def _close_stdin(self) -> None:
        stdin = self._process.stdin
        if stdin is None:
            return
        try:
            stdin.close()
        except (OSError, ValueError):
            LOGGER.debug("Failed to close FFmpeg stdin for %s", self.session_id, exc_info=True)

    def _read_stderr(self) -> None:
        raw = self._process.stderr
        if raw is None:
            return
        stream = io.TextIOWrapper(raw, encoding="utf-8", errors="replace")
        try:
            for raw_line in stream:
                line = raw_line.strip()
                if not line:
                    continue
                self._stderr_tail.append(line)
                if any(marker in line for marker in _NOTABLE_MARKERS):
                    LOGGER.info("[FFmpeg %s] %s", self.session_id, line)
                else:
                    LOGGER.debug("[FFmpeg %s] %s", self.session_id, line)
        except (OSError, ValueError):
            LOGGER.debug("FFmpeg stderr closed for %s", self.session_id, exc_info=True)
        finally:
            try:
                stream.close()
            except (OSError, ValueError):
                pass

    def _watch_exit(self) -> None:
        returncode = self._process.wait()
        reader = self._stderr_thread
        if reader is not None:
            reader.join(timeout=1.0)
        info = ExitInfo.from_returncode(returncode, self.stderr_tail())
        with self._lock:
            self._state = HandleState.EXITED
            self._exit_info = info
            timer = self._kill_timer
            self._kill_timer = None
            self._space.notify_all()
        if timer is not None:
            timer.cancel()
        self._exited.set()
        LOGGER.info(
            "FFmpeg process for %s exited with code %s and signal %s",
            self.session_id,
            info.code,
            info.signal_name,
        )
        callback = self._on_exit
        if callback is None:
            return
        try:
            callback(self, info)
        except Exception:
            LOGGER.exception("Exit callback failed for %s", self.session_id)


__all__ = ["ExitInfo", "HandleState", "ProcessHandle", "WriteOutcome"]
