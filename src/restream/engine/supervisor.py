"""Per-session FFmpeg supervisor: start, hot replace, stop and teardown."""
from __future__ import annotations

import logging
import shlex
from typing import Any, Callable, Optional, Sequence

from ..exceptions import ProcessSpawnError
from ..utils import to_destination_list
from .events import SessionNotifier
from .handle import ExitInfo, ProcessHandle
from .registry import SessionEntry, SessionRegistry, Stoppable
from .stop_strategy import StopResult, StopStrategy

LOGGER = logging.getLogger(__name__)

CommandBuilder = Callable[[Sequence[str]], Sequence[str]]
SimulationFactory = Callable[[str, Sequence[str], Callable[..., bool]], Optional[Stoppable]]


class StreamSupervisor:
    """Keep at most one live FFmpeg process per session and report its lifecycle.

    All registry mutations for one session happen while holding that
    session's lock, so a hot replace never interleaves with a stop. The exit
    observer removes an entry only if it still owns the exiting handle.
    """

    def __init__(
        self,
        *,
        notifier: SessionNotifier,
        command_builder: CommandBuilder,
        registry: Optional[SessionRegistry] = None,
        stop_strategy: Optional[StopStrategy] = None,
        simulation_factory: Optional[SimulationFactory] = None,
        max_queued_chunks: int = 64,
        high_watermark: Optional[int] = None,
    ) -> None:
        self._notifier = notifier
        self._command_builder = command_builder
        self._registry = registry or SessionRegistry()
        self._stopper = stop_strategy or StopStrategy()
        self._simulation_factory = simulation_factory
        self._max_queued_chunks = max(1, int(max_queued_chunks))
        self._high_watermark = high_watermark

    @property
    def notifier(self) -> SessionNotifier:
        return self._notifier

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def handle_for(self, session_id: str) -> Optional[ProcessHandle]:
        return self._registry.handle_for(session_id)

    def is_streaming(self, session_id: str) -> bool:
        return session_id in self._registry

    def active_sessions(self) -> list[str]:
        return self._registry.session_ids()

    def status(self) -> list[dict[str, Any]]:
        return self._registry.snapshot()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start_session(self, session_id: str, destinations: Any) -> bool:
        """Spawn FFmpeg for ``destinations``, replacing any process the session already owns."""

        targets = to_destination_list(destinations)
        if not targets:
            LOGGER.warning("Rejected start for %s: no destination URLs", session_id)
            self._notifier.error(session_id, "No destination URLs provided", {"reason": "invalid_destinations"})
            return False

        with self._registry.session_lock(session_id):
            previous = self._registry.pop(session_id)
            if previous is not None:
                LOGGER.info("Killing previous FFmpeg process for %s", session_id)
                self._release(previous)
                self._stopper.replace(previous.handle)

            LOGGER.info("Starting FFmpeg for %s with %d destination(s)", session_id, len(targets))
            try:
                command = list(self._command_builder(targets))
                LOGGER.info("FFmpeg command: %s", shlex.join(command))
                handle = ProcessHandle.spawn(
                    session_id,
                    command,
                    max_queued_chunks=self._max_queued_chunks,
                    high_watermark=self._high_watermark,
                    on_exit=self._on_process_exit,
                    on_write_error=self._on_write_error,
                )
            except (ProcessSpawnError, ValueError) as exc:
                LOGGER.error("Failed to start FFmpeg for %s: %s", session_id, exc)
                self._notifier.error(session_id, f"Failed to start FFmpeg: {exc}", {"reason": "spawn_failed"})
                return False

            entry = SessionEntry(session_id=session_id, handle=handle, destinations=targets)
            self._registry.put(entry)
            entry.simulation = self._start_simulation(session_id, targets)
            self._notifier.started(
                session_id,
                f"Streaming to {len(targets)} destination(s)",
                {"destinations": len(targets), "pid": handle.pid},
            )
        return True

    def stop_session(self, session_id: str) -> bool:
        """Close FFmpeg's input, schedule a forced kill and forget the session immediately."""

        with self._registry.session_lock(session_id):
            entry = self._registry.pop(session_id)
            if entry is None:
                LOGGER.debug("Stop requested for %s with no active FFmpeg process", session_id)
                self._notifier.error(session_id, "FFmpeg not running", {"reason": "not_running"})
                return False
            LOGGER.info("Stop streaming requested by %s", session_id)
            self._release(entry)
            self._stopper.graceful(entry.handle)
            self._notifier.stopped(session_id, "Stream stopped by user")
        return True

    def terminate_session(self, session_id: str) -> bool:
        """Interrupt FFmpeg immediately; used when the client disconnects."""

        with self._registry.session_lock(session_id):
            entry = self._registry.pop(session_id)
            if entry is None:
                return False
            LOGGER.info("Cleaning up FFmpeg for disconnected client %s", session_id)
            self._release(entry)
            self._stopper.interrupt(entry.handle)
        return True

    def shutdown(self, timeout: float) -> list[StopResult]:
        """Terminate every session and wait up to ``timeout`` seconds for the processes to exit."""

        handles: list[ProcessHandle] = []
        for session_id in self._registry.session_ids():
            with self._registry.session_lock(session_id):
                entry = self._registry.pop(session_id)
                if entry is None:
                    continue
                LOGGER.info("Terminating FFmpeg for %s", session_id)
                self._release(entry)
                handles.append(entry.handle)
        if not handles:
            return []
        results = self._stopper.shutdown(handles, timeout)
        forced = sum(1 for result in results if result.forced)
        LOGGER.info("Stopped %d FFmpeg process(es) (%d forced)", len(results), forced)
        return results

    # ------------------------------------------------------------------
    # Process callbacks
    # ------------------------------------------------------------------
    def _on_process_exit(self, handle: ProcessHandle, info: ExitInfo) -> None:
        session_id = handle.session_id
        with self._registry.session_lock(session_id):
            entry = self._registry.discard_if(session_id, handle)
            if entry is None:
                return
            self._release(entry)
            LOGGER.warning(
                "FFmpeg for %s exited without a stop request (code=%s signal=%s)",
                session_id,
                info.code,
                info.signal_name,
            )
            self._notifier.stopped(session_id, f"Stream ended (code: {info.code})", info.to_detail())

    def _on_write_error(self, handle: ProcessHandle, exc: BaseException) -> None:
        self._notifier.error(handle.session_id, f"Stream write error: {exc}", {"reason": "write_error"})

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _start_simulation(self, session_id: str, destinations: Sequence[str]) -> Optional[Stoppable]:
        factory = self._simulation_factory
        if factory is None:
            return None
        simulation = factory(session_id, destinations, self._registry.record_activity)
        if simulation is not None:
            start = getattr(simulation, "start", None)
            if callable(start):
                start()
        return simulation

    @staticmethod
    def _release(entry: SessionEntry) -> None:
        simulation = entry.simulation
        entry.simulation = None
        if simulation is not None:
            simulation.stop()


__all__ = ["CommandBuilder", "SimulationFactory", "StreamSupervisor"]
