"""Live counter endpoints."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Blueprint, current_app, jsonify

from ..services import CounterService

COUNTER_BLUEPRINT = Blueprint("counter", __name__, url_prefix="/api")


def _service() -> CounterService:
    svc: CounterService = current_app.extensions["counter_service"]
    return svc


@COUNTER_BLUEPRINT.post("/increment-counter")
def increment_counter() -> Any:
    return jsonify({"counter": _service().increment()}), HTTPStatus.OK


@COUNTER_BLUEPRINT.get("/get-counter")
def get_counter() -> Any:
    return jsonify({"counter": _service().value}), HTTPStatus.OK


__all__ = ["COUNTER_BLUEPRINT"]
