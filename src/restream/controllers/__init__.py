"""Socket.IO controllers for the restream service."""
from __future__ import annotations

from . import stream

__all__ = ["stream"]
