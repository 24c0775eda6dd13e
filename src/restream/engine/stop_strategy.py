"""Signal orchestration used to stop session FFmpeg processes."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from .handle import ProcessHandle

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class StopResult:
    """Outcome of waiting for a session's FFmpeg process to stop."""

    session_id: str
    returncode: Optional[int]
    forced: bool = False

    @property
    def exited(self) -> bool:
        return self.returncode is not None


class StopStrategy:
    """Coordinate the ways a session's FFmpeg process is brought down.

    ``graceful`` and ``interrupt`` are fire-and-forget; ``replace`` and
    ``shutdown`` wait, bounded by their grace periods.
    """

    def __init__(
        self,
        *,
        stop_grace: float = 2.0,
        replace_grace: float = 2.0,
        kill_timeout: float = 1.0,
    ) -> None:
        self._stop_grace = max(0.0, stop_grace)
        self._replace_grace = max(0.0, replace_grace)
        self._kill_timeout = max(0.0, kill_timeout)

    def graceful(self, handle: ProcessHandle) -> None:
        """Close stdin and force-kill if FFmpeg has not exited after the grace period."""

        LOGGER.info("Stopping FFmpeg for %s (pid=%s)", handle.session_id, handle.pid)
        handle.close_input()
        handle.schedule_kill(self._stop_grace)

    def interrupt(self, handle: ProcessHandle) -> None:
        """Close stdin and send SIGINT immediately."""

        LOGGER.info("Sending SIGINT to FFmpeg for %s (pid=%s)", handle.session_id, handle.pid)
        handle.close_input()
        handle.interrupt()

    def replace(self, handle: ProcessHandle) -> StopResult:
        """Interrupt ``handle`` and wait for it to exit so a successor can start."""

        self.interrupt(handle)
        returncode = handle.wait(self._replace_grace)
        if returncode is not None:
            return StopResult(session_id=handle.session_id, returncode=returncode)
        LOGGER.warning("FFmpeg for %s ignored SIGINT during replace; sending SIGKILL", handle.session_id)
        handle.kill()
        returncode = handle.wait(self._kill_timeout)
        if returncode is None:
            LOGGER.error("FFmpeg for %s still running after SIGKILL attempt", handle.session_id)
        return StopResult(session_id=handle.session_id, returncode=returncode, forced=True)

    def shutdown(self, handles: Iterable[ProcessHandle], timeout: float) -> list[StopResult]:
        """Interrupt every handle, then wait for all of them within one shared deadline."""

        pending = list(handles)
        for handle in pending:
            self.interrupt(handle)

        deadline = time.monotonic() + max(0.0, timeout)
        results: list[StopResult] = []
        stragglers: list[ProcessHandle] = []
        for handle in pending:
            remaining = max(0.0, deadline - time.monotonic())
            returncode = handle.wait(remaining)
            if returncode is None:
                stragglers.append(handle)
            else:
                results.append(StopResult(session_id=handle.session_id, returncode=returncode))

        for handle in stragglers:
            LOGGER.warning("FFmpeg for %s still running after shutdown grace; sending SIGKILL", handle.session_id)
            handle.kill()
            results.append(
                StopResult(
                    session_id=handle.session_id,
                    returncode=handle.wait(self._kill_timeout),
                    forced=True,
                )
            )
        return results


__all__ = ["StopResult", "StopStrategy"]
