# tests/test_health.py
from fastapi.testclient import TestClient


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_describes_api(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["docs"] == "/docs"
    assert "version" in data


def test_otc_sweeper_runs_while_app_is_up(client: TestClient, app) -> None:
    assert app.state.otc_sweeper.running
