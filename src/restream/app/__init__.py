"""Restream application factory."""
from __future__ import annotations

from typing import Any, Mapping, Optional

from flask import Flask

from .bootstrap import ensure_single_worker, init_logging, load_configuration
from .extensions import (
    configure_cors,
    init_counter_service,
    init_socketio,
    init_stream_supervisor,
    register_blueprints,
    resolve_cors_origins,
)


def create_app(config_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """Create and configure the restream Flask application."""

    init_logging()
    app = Flask(__name__)
    load_configuration(app, config_overrides)
    ensure_single_worker()

    init_counter_service(app)
    init_stream_supervisor(app)

    cors_origin = app.config.get("RESTREAM_CORS_ORIGIN", "*")
    init_socketio(app, resolve_cors_origins(cors_origin))
    register_blueprints(app)
    configure_cors(app, cors_origin)

    return app


__all__ = ["create_app"]
