# tests/test_health.py
from fastapi.testclient import TestClient


def test_health_reports_environment(client: TestClient) -> None:
    """Verify that the health endpoint reports the configured environment."""
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["env"] == "local"
    assert isinstance(body["time"], int)


def test_request_id_is_echoed(client: TestClient) -> None:
    r = client.get("/health", headers={"X-Request-Id": "abc123"})
    assert r.headers["X-Request-Id"] == "abc123"


def test_request_id_is_generated(client: TestClient) -> None:
    r = client.get("/health")
    request_id = r.headers["X-Request-Id"]
    assert len(request_id) == 16
    int(request_id, 16)


def test_shutdown_closes_upstream_client(make_app, upstream) -> None:
    with TestClient(make_app()) as client:
        assert client.get("/health").status_code == 200
        assert upstream.closed is False
    assert upstream.closed is True
