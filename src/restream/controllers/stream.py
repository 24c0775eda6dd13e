"""Socket.IO handlers for the streaming session protocol."""
from __future__ import annotations

import logging
from typing import Any, Optional

from flask import current_app, request

from ..engine import StreamRelay, StreamSupervisor
from ..extensions import socketio

LOGGER = logging.getLogger(__name__)


def _supervisor() -> StreamSupervisor:
    supervisor: StreamSupervisor = current_app.extensions["stream_supervisor"]
    return supervisor


def _relay() -> StreamRelay:
    relay: StreamRelay = current_app.extensions["stream_relay"]
    return relay


def _session_id() -> str:
    return str(request.sid)  # type: ignore[attr-defined]


@socketio.on("connect")
def handle_socket_connect(auth: Optional[Any] = None) -> None:
    LOGGER.info("New client connected: %s", _session_id())


@socketio.on("set_rtmp_urls")
def handle_set_rtmp_urls(urls: Any = None) -> None:
    session_id = _session_id()
    LOGGER.info("Received RTMP URLs from %s: %s", session_id, urls)
    _supervisor().start_session(session_id, urls)


@socketio.on("binarystream")
def handle_binary_stream(chunk: Any = None) -> dict[str, bool]:
    return _relay().relay_chunk(_session_id(), chunk).to_ack()


@socketio.on("stop_streaming")
def handle_stop_streaming(*_args: Any) -> None:
    _supervisor().stop_session(_session_id())


@socketio.on("disconnect")
def handle_socket_disconnect(*_args: Any) -> None:
    session_id = _session_id()
    LOGGER.info("Client disconnected: %s", session_id)
    _supervisor().terminate_session(session_id)


__all__ = [
    "handle_binary_stream",
    "handle_set_rtmp_urls",
    "handle_socket_connect",
    "handle_socket_disconnect",
    "handle_stop_streaming",
]
