"""Runtime entrypoints for the restream service."""
from __future__ import annotations
