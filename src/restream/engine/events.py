"""Session-scoped lifecycle notifications."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Protocol

LOGGER = logging.getLogger(__name__)

STREAM_STATUS_EVENT = "stream_status"
VIEWER_UPDATE_EVENT = "viewer_update"
CHAT_UPDATE_EVENT = "chat_update"


class StreamStatus(str, Enum):
    STARTED = "started"
    ERROR = "error"
    STOPPED = "stopped"


@dataclass(frozen=True)
class StatusEvent:
    """Payload of a ``stream_status`` event."""

    status: StreamStatus
    message: str
    detail: Optional[Mapping[str, Any]] = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"status": self.status.value, "message": self.message}
        if self.detail is not None:
            payload["detail"] = dict(self.detail)
        return payload


class EventSink(Protocol):
    """Delivers a named event to exactly one session."""

    def emit(self, session_id: str, event: str, payload: Any) -> None:
        ...


class SocketIOEventSink:
    """Emit events to a single Socket.IO client room (the client's ``sid``)."""

    def __init__(self, socketio: Any, *, namespace: str = "/") -> None:
        self._socketio = socketio
        self._namespace = namespace

    def emit(self, session_id: str, event: str, payload: Any) -> None:
        self._socketio.emit(event, payload, to=session_id, namespace=self._namespace)


class SessionNotifier:
    """Best-effort delivery of status, viewer and chat events.

    Delivery failures are logged and dropped; a session that has already gone
    away has no use for a retried status.
    """

    def __init__(self, sink: EventSink) -> None:
        self._sink = sink

    def status(self, session_id: str, event: StatusEvent) -> None:
        self.send(session_id, STREAM_STATUS_EVENT, event.to_payload())

    def started(self, session_id: str, message: str, detail: Optional[Mapping[str, Any]] = None) -> None:
        self.status(session_id, StatusEvent(StreamStatus.STARTED, message, detail))

    def error(self, session_id: str, message: str, detail: Optional[Mapping[str, Any]] = None) -> None:
        self.status(session_id, StatusEvent(StreamStatus.ERROR, message, detail))

    def stopped(self, session_id: str, message: str, detail: Optional[Mapping[str, Any]] = None) -> None:
        self.status(session_id, StatusEvent(StreamStatus.STOPPED, message, detail))

    def send(self, session_id: str, event: str, payload: Any) -> None:
        try:
            self._sink.emit(session_id, event, payload)
        except Exception:
            LOGGER.debug("Failed to deliver %s to %s", event, session_id, exc_info=True)


__all__ = [
    "CHAT_UPDATE_EVENT",
    "EventSink",
    "STREAM_STATUS_EVENT",
    "SessionNotifier",
    "SocketIOEventSink",
    "StatusEvent",
    "StreamStatus",
    "VIEWER_UPDATE_EVENT",
]
