"""Socket.IO server entrypoint with process-wide shutdown handling."""
from __future__ import annotations

import logging
import signal
from types import FrameType
from typing import Optional

from .. import create_app
from ...engine import StreamSupervisor
from ...extensions import socketio
from ...utils import coerce_float

LOGGER = logging.getLogger(__name__)


def install_signal_handlers(supervisor: StreamSupervisor, grace_seconds: float) -> None:
    """Stop every session's FFmpeg process before the server exits on SIGINT/SIGTERM."""

    def _handle_signal(signum: int, _frame: Optional[FrameType]) -> None:
        LOGGER.info("Shutting down server (%s)...", signal.Signals(signum).name)
        supervisor.shutdown(grace_seconds)
        LOGGER.info("Exiting...")
        raise SystemExit(0)

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)


def main() -> None:
    app = create_app()
    supervisor: StreamSupervisor = app.extensions["stream_supervisor"]
    install_signal_handlers(supervisor, coerce_float(app.config.get("SHUTDOWN_GRACE_SECONDS"), 1.0))

    host = app.config.get("HOST") or "0.0.0.0"
    port = int(app.config.get("PORT") or 4000)
    run_kwargs = {}
    if socketio.async_mode == "threading":
        run_kwargs["allow_unsafe_werkzeug"] = True
    LOGGER.info("Server running at http://%s:%s", host, port)
    socketio.run(app, host=host, port=port, **run_kwargs)


__all__ = ["install_signal_handlers", "main"]


if __name__ == "__main__":  # pragma: no cover - manual entrypoint
    main()
