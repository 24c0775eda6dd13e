"""Custom exceptions raised by the restream relay."""
from __future__ import annotations


class RestreamError(RuntimeError):
    """Base error for the restream package."""


class ProcessSpawnError(RestreamError):
    """Raised when the FFmpeg process for a session cannot be started."""


class ProcessNotRunning(RestreamError):
    """Raised when a chunk is written to a handle that is exiting or has exited."""


class RelayWriteError(RestreamError):
    """Raised when the FFmpeg input pipe is broken."""


__all__ = ["ProcessNotRunning", "ProcessSpawnError", "RelayWriteError", "RestreamError"]
