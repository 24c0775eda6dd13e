"""Logging setup for the restream relay."""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# Per-packet loggers.
_CHATTY_LOGGERS = ("engineio.server", "socketio.server", "werkzeug")

_LOG_FILE: Optional[Path] = None
_CONFIGURED = False


def _resolve_level(raw: Optional[str]) -> int:
    if not raw:
        return logging.INFO
    candidate = raw.strip().upper()
    if candidate.isdigit():
        return int(candidate)
    level = logging.getLevelName(candidate)
    return level if isinstance(level, int) else logging.INFO


def _resolve_log_directory(log_dir: Optional[Path]) -> Path:
    if log_dir is not None:
        return Path(log_dir)
    configured = os.getenv("RESTREAM_LOG_DIR")
    if configured:
        return Path(configured).expanduser()
    return Path(__file__).resolve().parents[2] / "logs"


def configure_logging(prefix: str, *, log_dir: Optional[Path] = None) -> Path:
    """Send root logging to a per-run file under the log directory and to stdout.

    Safe to call more than once; only the first call installs handlers.
    ``RESTREAM_LOG_LEVEL`` sets the root level (default ``INFO``).
    """

    global _CONFIGURED, _LOG_FILE

    if _CONFIGURED and _LOG_FILE is not None:
        return _LOG_FILE

    directory = _resolve_log_directory(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    started = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_file = directory / f"{prefix}-{started}-{os.getpid()}.log"

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handlers: list[logging.Handler] = [
        logging.FileHandler(log_file, encoding="utf-8"),
        logging.StreamHandler(sys.stdout),
    ]

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(_resolve_level(os.getenv("RESTREAM_LOG_LEVEL")))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _CONFIGURED = True
    _LOG_FILE = log_file
    root.info("Logging to %s", log_file)
    return log_file


def current_log_file() -> Optional[Path]:
    """Path of the active log file, or ``None`` before logging is configured."""

    return _LOG_FILE


__all__ = ["configure_logging", "current_log_file"]
