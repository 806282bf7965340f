from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from resume_store.main import create_app
from resume_store.runtime import Runtime


def test_health_requires_started_runtime(settings, database) -> None:
    client = TestClient(create_app(lambda: Runtime(settings, database)))
    response = client.get("/healthz")
    assert response.status_code == 503
    assert response.json()["detail"] == "runtime not started"


def test_database_health_endpoint_success(settings, database, fake_redis) -> None:
    app = create_app(lambda: Runtime(settings, database, fake_redis))
    with TestClient(app) as client:
        assert client.get("/healthz").json() == {"status": "ok", "log_level": "INFO"}
        response = client.get("/healthz/database")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["dialect"] == "sqlite"
    assert "pool" in payload
    assert fake_redis.closed is True


def test_database_health_endpoint_failure(monkeypatch, settings, database) -> None:
    def unreachable() -> None:
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(database, "ping", unreachable)
    with TestClient(create_app(lambda: Runtime(settings, database))) as client:
        response = client.get("/healthz/database")

    assert response.status_code == 503
    assert "connection refused" in response.json()["detail"]


def test_cache_health_reports_each_state(settings, database, fake_redis, broken_redis) -> None:
    with TestClient(create_app(lambda: Runtime(settings, database))) as client:
        assert client.get("/healthz/cache").json() == {"status": "disabled"}

    with TestClient(create_app(lambda: Runtime(settings, database, fake_redis))) as client:
        assert client.get("/healthz/cache").json() == {"status": "ok"}

    with TestClient(create_app(lambda: Runtime(settings, database, broken_redis))) as client:
        response = client.get("/healthz/cache")
    assert response.status_code == 503
