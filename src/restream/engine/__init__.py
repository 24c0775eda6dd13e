"""Engine layer: FFmpeg process handles, session registry, supervisor and relay."""
from __future__ import annotations

from .events import (
    CHAT_UPDATE_EVENT,
    STREAM_STATUS_EVENT,
    VIEWER_UPDATE_EVENT,
    EventSink,
    SessionNotifier,
    SocketIOEventSink,
    StatusEvent,
    StreamStatus,
)
from .handle import ExitInfo, HandleState, ProcessHandle, WriteOutcome
from .registry import SessionEntry, SessionRegistry
from .relay import RelayResult, StreamRelay
from .stop_strategy import StopResult, StopStrategy
from .supervisor import StreamSupervisor

__all__ = [
    "CHAT_UPDATE_EVENT",
    "EventSink",
    "ExitInfo",
    "HandleState",
    "ProcessHandle",
    "RelayResult",
    "STREAM_STATUS_EVENT",
    "SessionEntry",
    "SessionNotifier",
    "SessionRegistry",
    "SocketIOEventSink",
    "StatusEvent",
    "StopResult",
    "StopStrategy",
    "StreamRelay",
    "StreamStatus",
    "StreamSupervisor",
    "VIEWER_UPDATE_EVENT",
    "WriteOutcome",
]
