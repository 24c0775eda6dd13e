"""Live stream relay: Socket.IO ingest fanned out through FFmpeg to RTMP destinations."""
from __future__ import annotations

from .app import create_app
from .encoding import EncoderSettings, FFmpegTeeEncoder
from .engine import ProcessHandle, SessionRegistry, StreamRelay, StreamSupervisor
from .extensions import socketio

__all__ = [
    "EncoderSettings",
    "FFmpegTeeEncoder",
    "ProcessHandle",
    "SessionRegistry",
    "StreamRelay",
    "StreamSupervisor",
    "create_app",
    "socketio",
]
