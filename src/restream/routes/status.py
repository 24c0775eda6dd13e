"""Health and session status endpoints."""
from __future__ import annotations

from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any

from flask import Blueprint, current_app, jsonify

from ..engine import StreamSupervisor
from ..logging_config import current_log_file

STATUS_BLUEPRINT = Blueprint("status", __name__)


def _supervisor() -> StreamSupervisor:
    supervisor: StreamSupervisor = current_app.extensions["stream_supervisor"]
    return supervisor


@STATUS_BLUEPRINT.get("/health")
def health_endpoint() -> Any:
    payload = {
        "status": "ok",
        "service": "restream",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "sessions": len(_supervisor().active_sessions()),
    }
    return jsonify(payload), HTTPStatus.OK


@STATUS_BLUEPRINT.get("/status")
def status_endpoint() -> Any:
    log_path = current_log_file()
    payload = {
        "sessions": _supervisor().status(),
        "log_file": str(log_path) if log_path else None,
    }
    return jsonify(payload), HTTPStatus.OK


__all__ = ["STATUS_BLUEPRINT"]
