"""Inbound chunk relay from a session into its FFmpeg input pipe."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..exceptions import ProcessNotRunning, RelayWriteError
from .events import SessionNotifier
from .handle import WriteOutcome
from .supervisor import StreamSupervisor

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelayResult:
    """Outcome of relaying one chunk, returned to the transport as an ack."""

    accepted: bool
    draining: bool = False

    def to_ack(self) -> dict[str, bool]:
        return {"accepted": self.accepted, "draining": self.draining}


class StreamRelay:
    """Write session chunks to that session's FFmpeg process, in arrival order.

    A full input queue blocks the caller, which pauses intake for that
    session only. If the block lasts longer than ``stall_seconds`` the
    session is told once per chunk that delivery is backed up.
    """

    def __init__(
        self,
        supervisor: StreamSupervisor,
        *,
        notifier: Optional[SessionNotifier] = None,
        stall_seconds: Optional[float] = 5.0,
    ) -> None:
        self._supervisor = supervisor
        self._notifier = notifier or supervisor.notifier
        self._stall_seconds = stall_seconds

    def relay_chunk(self, session_id: str, chunk: Any) -> RelayResult:
        handle = self._supervisor.handle_for(session_id)
        if handle is None:
            LOGGER.debug("No FFmpeg process for %s, ignoring stream data", session_id)
            self._notifier.error(session_id, "FFmpeg not running", {"reason": "not_running"})
            return RelayResult(accepted=False)

        data = _as_bytes(chunk)
        if data is None:
            LOGGER.warning("Discarding non-binary chunk from %s (%s)", session_id, type(chunk).__name__)
            self._notifier.error(session_id, "Stream chunk must be binary", {"reason": "invalid_chunk"})
            return RelayResult(accepted=False)

        def _report_stall(waited: float) -> None:
            self._notifier.error(
                session_id,
                f"Stream backpressure: FFmpeg input full for {waited:.1f}s",
                {"reason": "backpressure", "queued_chunks": handle.queued_chunks},
            )

        try:
            outcome = handle.write(data, stall_after=self._stall_seconds, on_stall=_report_stall)
        except RelayWriteError as exc:
            self._notifier.error(session_id, f"Stream write error: {exc}", {"reason": "write_error"})
            return RelayResult(accepted=False)
        except ProcessNotRunning:
            LOGGER.debug("FFmpeg for %s is shutting down; dropping chunk", session_id)
            self._notifier.error(session_id, "FFmpeg not running", {"reason": "not_running"})
            return RelayResult(accepted=False)
        return RelayResult(accepted=True, draining=outcome is WriteOutcome.DRAINING)


def _as_bytes(chunk: Any) -> Optional[bytes]:
    if isinstance(chunk, bytes):
        return chunk
    if isinstance(chunk, (bytearray, memoryview)):
        return bytes(chunk)
    return None


__all__ = ["RelayResult", "StreamRelay"]
