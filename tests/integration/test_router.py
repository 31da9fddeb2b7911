"""Integration tests for the HTTP adapter."""

import datetime as dt
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from sitelog.core.config import settings
from sitelog.core.errors import ErrorCode
from sitelog.main import app


pytestmark = pytest.mark.integration


@pytest.fixture
def client(tmp_path, monkeypatch) -> Iterator[TestClient]:
    """Test client running the app lifespan against a temporary database."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "api.db"))
    with TestClient(app) as test_client:
        yield test_client


def _register(client: TestClient, full_name: str, email: str, role: str) -> dict[str, str]:
    response = client.post("/users", json={"full_name": full_name, "email": email, "role": role})
    assert response.status_code == 201
    return {"X-User-Id": response.json()["id"], "X-User-Role": role}


@pytest.fixture
def leader(client: TestClient) -> dict[str, str]:
    return _register(client, "Anna Berg", "anna@site.test", "Team Leader")


@pytest.fixture
def boss(client: TestClient) -> dict[str, str]:
    return _register(client, "Maria Diaz", "maria@site.test", "Manager")


def _log_body(**overrides) -> dict:
    body = {
        "date": "2024-01-10",
        "project_id": "1",
        "start_time": "07:30",
        "end_time": "16:00",
        "work_description": "Poured slab",
    }
    body.update(overrides)
    return body


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_lifecycle_over_http(client, leader, boss):
    created = client.post("/logs", json=_log_body(), headers=leader)
    assert created.status_code == 201
    log_id = created.json()["id"]
    assert created.json()["status"] == "draft"

    submitted = client.post(f"/logs/{log_id}/submit", headers=leader)
    assert submitted.json()["status"] == "submitted"

    assert client.get("/notifications/unread-count", headers=boss).json() == {"unread": 1}

    approved = client.post(f"/logs/{log_id}/approve", headers=boss)
    assert approved.json()["status"] == "approved"

    notifications = client.get("/notifications", headers=leader).json()
    assert [n["event"] for n in notifications] == ["approved"]

    marked = client.post(f"/notifications/{notifications[0]['id']}/read", headers=leader)
    assert marked.json()["is_read"] is True


def test_error_mapping(client, leader, boss):
    log_id = client.post("/logs", json=_log_body(), headers=leader).json()["id"]

    conflict = client.post(f"/logs/{log_id}/approve", headers=boss)
    assert conflict.status_code == 409
    assert conflict.json()["code"] == ErrorCode.ERR_INVALID_STATE_TRANSITION

    forbidden = client.post("/logs", json=_log_body(), headers=boss)
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == ErrorCode.ERR_PERMISSION_DENIED

    invalid = client.post("/logs", json=_log_body(end_time="06:00"), headers=leader)
    assert invalid.status_code == 422
    assert invalid.json()["code"] == ErrorCode.ERR_VALIDATION

    missing = client.get("/logs/9999", headers=boss)
    assert missing.status_code == 404
    assert missing.json()["code"] == ErrorCode.ERR_NOT_FOUND


def test_unknown_role_header(client):
    response = client.get("/logs", headers={"X-User-Id": "1", "X-User-Role": "Admin"})

    assert response.status_code == 401


def test_update_and_delete(client, leader):
    log_id = client.post("/logs", json=_log_body(), headers=leader).json()["id"]

    patched = client.patch(f"/logs/{log_id}", json={"weather": "Sunny"}, headers=leader)
    assert patched.json()["weather"] == "Sunny"

    deleted = client.delete(f"/logs/{log_id}", headers=leader)
    assert deleted.status_code == 204
    assert client.get(f"/logs/{log_id}", headers=leader).status_code == 404


def test_list_with_filters_and_window(client, leader, boss):
    today = dt.date.today()
    client.post("/logs", json=_log_body(date=today.isoformat()), headers=leader)
    client.post("/logs", json=_log_body(date=(today - dt.timedelta(days=40)).isoformat()), headers=leader)

    recent = client.get("/logs", params={"days": 7}, headers=boss)
    assert len(recent.json()) == 1

    everything = client.get("/logs", params={"status": "draft", "search_term": "slab"}, headers=boss)
    assert len(everything.json()) == 2

    inverted = client.get("/logs", params={"start_date": "2024-02-01", "end_date": "2024-01-01"}, headers=boss)
    assert inverted.status_code == 422


def test_dashboard_views_use_default_windows(client, leader, boss):
    today = dt.date.today()
    for days_ago in (3, 20, 40):
        client.post("/logs", json=_log_body(date=(today - dt.timedelta(days=days_ago)).isoformat()), headers=leader)

    assert len(client.get("/logs", params={"view": "dashboard"}, headers=boss).json()) == 1
    assert len(client.get("/logs", params={"view": "all"}, headers=boss).json()) == 2
    assert len(client.get("/logs", params={"view": "dashboard", "days": 30}, headers=boss).json()) == 2
    assert client.get("/logs", params={"view": "weekly"}, headers=boss).status_code == 422


def test_mark_all_read_over_http(client, leader, boss):
    for _ in range(2):
        log_id = client.post("/logs", json=_log_body(), headers=leader).json()["id"]
        client.post(f"/logs/{log_id}/submit", headers=leader)

    assert client.post("/notifications/read-all", headers=boss).json() == {"updated": 2}
    assert client.get("/notifications/unread-count", headers=boss).json() == {"unread": 0}


def test_directory_endpoints(client, leader, boss):
    created = client.post("/projects", json={"name": "Harbour Tower"}, headers=boss)
    assert created.status_code == 201

    assert [p["name"] for p in client.get("/projects", headers=leader).json()] == ["Harbour Tower"]
    assert [u["full_name"] for u in client.get("/users/team-leaders", headers=boss).json()] == ["Anna Berg"]

    duplicate = client.post("/users", json={"full_name": "Anna", "email": "anna@site.test", "role": "Manager"})
    assert duplicate.status_code == 422
