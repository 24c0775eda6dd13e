"""Extension and service wiring for the restream Flask application."""
from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

from flask import Flask, Response, request

from ..encoding import EncoderSettings, FFmpegTeeEncoder
from ..engine import (
    SessionNotifier,
    SocketIOEventSink,
    StopStrategy,
    StreamRelay,
    StreamSupervisor,
)
from ..extensions import socketio
from ..services import CounterService, PlatformSimulator
from ..utils import coerce_float, coerce_int, to_bool


def resolve_cors_origins(raw_origin: Optional[str]) -> Sequence[str] | str:
    """Return a Socket.IO compatible CORS configuration."""

    if not raw_origin or raw_origin.strip() == "*":
        return "*"
    candidates: Iterable[str] = (fragment.strip() for fragment in raw_origin.split(","))
    allowed = [origin for origin in candidates if origin]
    return allowed or "*"


def init_counter_service(app: Flask) -> CounterService:
    counter_service = CounterService()
    app.extensions["counter_service"] = counter_service
    return counter_service


def init_stream_supervisor(app: Flask) -> StreamSupervisor:
    """Build the supervisor and relay and attach them to the Flask app."""

    config = app.config
    notifier = SessionNotifier(SocketIOEventSink(socketio))
    encoder = FFmpegTeeEncoder(EncoderSettings.from_config(config))
    stop_strategy = StopStrategy(
        stop_grace=coerce_float(config.get("STOP_GRACE_SECONDS"), 2.0),
        replace_grace=coerce_float(config.get("REPLACE_GRACE_SECONDS"), 2.0),
    )

    simulation_factory = None
    if to_bool(config.get("SIMULATION_ENABLED", True)):
        interval = coerce_float(config.get("SIMULATION_INTERVAL_SECONDS"), 5.0)
        history_limit = coerce_int(config.get("CHAT_HISTORY_LIMIT"), 50)

        def simulation_factory(session_id: str, destinations: Sequence[str], record_activity: Any) -> PlatformSimulator:
            return PlatformSimulator(
                session_id,
                destinations,
                notifier=notifier,
                record_activity=record_activity,
                interval_seconds=interval,
                history_limit=history_limit,
            )

    supervisor = StreamSupervisor(
        notifier=notifier,
        command_builder=encoder.build_command,
        stop_strategy=stop_strategy,
        simulation_factory=simulation_factory,
        max_queued_chunks=coerce_int(config.get("RELAY_QUEUE_MAX_CHUNKS"), 64),
        high_watermark=coerce_int(config.get("RELAY_HIGH_WATERMARK"), 48),
    )
    relay = StreamRelay(
        supervisor,
        stall_seconds=coerce_float(config.get("RELAY_STALL_SECONDS"), 5.0),
    )
    app.extensions["stream_supervisor"] = supervisor
    app.extensions["stream_relay"] = relay
    return supervisor


def init_socketio(app: Flask, cors_allowed: Sequence[str] | str) -> None:
    """Configure Socket.IO; handlers run in arrival order per connection."""

    # Handlers must be registered before init_app so they survive re-initialisation.
    from .. import controllers as _controllers  # noqa: F401

    socketio.init_app(
        app,
        cors_allowed_origins=cors_allowed,
        cors_credentials=True,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE") or None,
        async_handlers=False,
        max_http_buffer_size=coerce_int(app.config.get("SOCKETIO_MAX_HTTP_BUFFER_SIZE"), 10_000_000),
    )


def register_blueprints(app: Flask) -> None:
    from ..routes import API_BLUEPRINTS

    for blueprint in API_BLUEPRINTS:
        app.register_blueprint(blueprint)


def configure_cors(app: Flask, cors_origin: Optional[str]) -> None:
    allowed_default = cors_origin or "*"

    @app.after_request
    def add_cors_headers(response: Response) -> Response:
        origin = request.headers.get("Origin")
        allowed_origin = allowed_default
        if allowed_default == "*" and origin:
            allowed_origin = origin
        response.headers["Access-Control-Allow-Origin"] = allowed_origin
        response.headers.setdefault("Access-Control-Allow-Headers", "Content-Type")
        response.headers.setdefault("Access-Control-Allow-Methods", "GET,POST,OPTIONS")
        if allowed_origin != "*":
            response.headers.setdefault("Access-Control-Allow-Credentials", "true")
        if origin:
            response.headers.add("Vary", "Origin")
        return response


__all__ = [
    "configure_cors",
    "init_counter_service",
    "init_socketio",
    "init_stream_supervisor",
    "register_blueprints",
    "resolve_cors_origins",
]
