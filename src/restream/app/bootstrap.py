"""Bootstrap helpers for the restream Flask application."""
from __future__ import annotations

import os
from typing import Any, Mapping, Optional

from flask import Flask

from ..config import build_default_config
from ..logging_config import configure_logging


def init_logging() -> None:
    """Configure file and console logging for the relay service."""

    configure_logging("restream")


def load_configuration(app: Flask, overrides: Optional[Mapping[str, Any]] = None) -> None:
    """Populate the default configuration values on the Flask app."""

    app.config.from_mapping(build_default_config())
    if overrides:
        app.config.from_mapping(overrides)


def ensure_single_worker() -> None:
    """Validate that the service is running with a single worker process.

    The session registry lives in process memory, so every event for a
    session must land on the worker that owns its FFmpeg process.
    """

    worker_count = 1
    raw_worker_count = (
        os.getenv("RESTREAM_WORKER_PROCESSES")
        or os.getenv("GUNICORN_WORKERS")
        or os.getenv("WEB_CONCURRENCY")
    )
    if raw_worker_count:
        try:
            worker_count = max(1, int(raw_worker_count))
        except ValueError:
            worker_count = 1
    if worker_count != 1:
        raise RuntimeError(
            "Restream relay requires a single worker process. "
            "Set GUNICORN_WORKERS=1 (or WEB_CONCURRENCY=1) before launching. "
            f"Detected {worker_count}."
        )


__all__ = ["ensure_single_worker", "init_logging", "load_configuration"]
