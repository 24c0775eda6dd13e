"""Configuration helpers for the restream relay service."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv

_dotenv_path = find_dotenv(usecwd=True)
if _dotenv_path:
    load_dotenv(_dotenv_path, override=False)

PROJECT_ROOT = Path(__file__).resolve().parents[2]

LOGGER = logging.getLogger(__name__)


def _env_str(name: str, default: Optional[str]) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    trimmed = raw.strip()
    return trimmed or default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Invalid %s=%r; falling back to %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        LOGGER.warning("Invalid %s=%r; falling back to %s", name, raw, default)
        return default


def build_default_config() -> Dict[str, Any]:
    """Return the default configuration mapping for the Flask app."""

    return {
        "HOST": _env_str("HOST", "0.0.0.0"),
        "PORT": _env_int("PORT", 4000),
        "RESTREAM_CORS_ORIGIN": _env_str("RESTREAM_CORS_ORIGIN", "*"),
        "SOCKETIO_ASYNC_MODE": _env_str("SOCKETIO_ASYNC_MODE", "threading"),
        "SOCKETIO_MAX_HTTP_BUFFER_SIZE": _env_int("SOCKETIO_MAX_HTTP_BUFFER_SIZE", 10_000_000),
        # FFmpeg encoding
        "FFMPEG_BINARY": _env_str("FFMPEG_BINARY", "ffmpeg"),
        "FFMPEG_VIDEO_CODEC": _env_str("FFMPEG_VIDEO_CODEC", "libx264"),
        "FFMPEG_PRESET": _env_str("FFMPEG_PRESET", "veryfast"),
        "FFMPEG_TUNE": _env_str("FFMPEG_TUNE", "zerolatency"),
        "FFMPEG_VIDEO_BITRATE": _env_str("FFMPEG_VIDEO_BITRATE", "1000k"),
        "FFMPEG_MAXRATE": _env_str("FFMPEG_MAXRATE", "1000k"),
        "FFMPEG_BUFSIZE": _env_str("FFMPEG_BUFSIZE", "2000k"),
        "FFMPEG_GOP": _env_int("FFMPEG_GOP", 30),
        "FFMPEG_FRAME_RATE": _env_int("FFMPEG_FRAME_RATE", 30),
        "FFMPEG_AUDIO_CODEC": _env_str("FFMPEG_AUDIO_CODEC", "aac"),
        "FFMPEG_AUDIO_BITRATE": _env_str("FFMPEG_AUDIO_BITRATE", "128k"),
        "FFMPEG_AUDIO_SAMPLE_RATE": _env_int("FFMPEG_AUDIO_SAMPLE_RATE", 44100),
        "FFMPEG_OUTPUT_FORMAT": _env_str("FFMPEG_OUTPUT_FORMAT", "flv"),
        # Relay and lifecycle
        "RELAY_QUEUE_MAX_CHUNKS": _env_int("RELAY_QUEUE_MAX_CHUNKS", 64),
        "RELAY_HIGH_WATERMARK": _env_int("RELAY_HIGH_WATERMARK", 48),
        "RELAY_STALL_SECONDS": _env_float("RELAY_STALL_SECONDS", 5.0),
        "STOP_GRACE_SECONDS": _env_float("STOP_GRACE_SECONDS", 2.0),
        "REPLACE_GRACE_SECONDS": _env_float("REPLACE_GRACE_SECONDS", 2.0),
        "SHUTDOWN_GRACE_SECONDS": _env_float("SHUTDOWN_GRACE_SECONDS", 1.0),
        # Platform simulation
        "SIMULATION_ENABLED": _env_bool("SIMULATION_ENABLED", True),
        "SIMULATION_INTERVAL_SECONDS": _env_float("SIMULATION_INTERVAL_SECONDS", 5.0),
        "CHAT_HISTORY_LIMIT": _env_int("CHAT_HISTORY_LIMIT", 50),
    }


__all__ = ["PROJECT_ROOT", "build_default_config"]
