from __future__ import annotations

import pytest

from restream.app import create_app
from restream.app.bootstrap import ensure_single_worker


@pytest.fixture()
def app():
    app = create_app({"SIMULATION_ENABLED": False, "TESTING": True})
    yield app
    app.extensions["stream_supervisor"].shutdown(1.0)


@pytest.fixture()
def client(app):
    return app.test_client()


def test_counter_increments(client) -> None:
    assert client.get("/api/get-counter").get_json() == {"counter": 0}

    first = client.post("/api/increment-counter")
    second = client.post("/api/increment-counter")

    assert first.status_code == 200
    assert first.get_json() == {"counter": 1}
    assert second.get_json() == {"counter": 2}
    assert client.get("/api/get-counter").get_json() == {"counter": 2}


def test_health_reports_service_and_sessions(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["service"] == "restream"
    assert payload["sessions"] == 0
    assert "timestamp" in payload


def test_status_lists_sessions(client) -> None:
    payload = client.get("/status").get_json()

    assert payload["sessions"] == []
    assert payload["log_file"]


def test_cors_echoes_request_origin(client) -> None:
    response = client.get("/health", headers={"Origin": "http://localhost:3000"})

    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
    assert response.headers["Access-Control-Allow-Credentials"] == "true"


def test_restricted_cors_origin() -> None:
    app = create_app({"SIMULATION_ENABLED": False, "RESTREAM_CORS_ORIGIN": "https://studio.example"})
    try:
        response = app.test_client().get("/health", headers={"Origin": "https://other.example"})
        assert response.headers["Access-Control-Allow-Origin"] == "https://studio.example"
    finally:
        app.extensions["stream_supervisor"].shutdown(1.0)


def test_multiple_workers_are_refused(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GUNICORN_WORKERS", "4")

    with pytest.raises(RuntimeError, match="single worker"):
        ensure_single_worker()
