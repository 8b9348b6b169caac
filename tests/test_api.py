# tests/test_api.py

from datetime import timedelta

import pytest
from starlette.websockets import WebSocketDisconnect

from taskmanager.utils.time import utcnow

from .fakes import FakeEmailTransport


def iso(delta: timedelta) -> str:
    return (utcnow() + delta).isoformat()


def create_task(client, headers, **fields):
    payload = {"title": "Prepare slides", "due_date": iso(timedelta(days=2)), "type": "work"}
    payload.update(fields)
    response = client.post("/api/tasks", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_health_and_root(client):
    assert client.get("/health").json() == {"status": "healthy", "version": "1.0.0"}
    assert client.get("/").json()["docs"] == "/docs"


def test_register_login_and_profile(client):
    client.post("/auth/register", json={"email": "Sam@Example.com", "password": "secret123", "name": "Sam"})

    bad = client.post("/auth/login", json={"email": "sam@example.com", "password": "wrong"})
    assert bad.status_code == 401

    login = client.post("/auth/login", json={"email": "sam@example.com", "password": "secret123"})
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['token']}"}

    profile = client.get("/auth/profile", headers=headers).json()
    assert profile["email"] == "sam@example.com"
    assert profile["notification_preferences"] == {"email": True, "push": True}
    assert profile["last_login"] is not None

    updated = client.put(
        "/auth/profile",
        json={"name": "Samantha", "notification_preferences": {"email": False, "push": True}},
        headers=headers,
    ).json()
    assert updated["name"] == "Samantha"
    assert updated["notification_preferences"] == {"email": False, "push": True}


def test_duplicate_registration_rejected(client, auth):
    response = client.post("/auth/register", json={"email": "api@example.com", "password": "secret123", "name": "x"})
    assert response.status_code == 400


def test_requests_without_token_are_rejected(client):
    assert client.get("/api/tasks").status_code == 401
    assert client.get("/api/tasks", headers={"Authorization": "Bearer nonsense"}).status_code == 401


def test_task_crud(client, auth):
    headers = auth["headers"]
    task = create_task(client, headers, tags=["slides"], priority="high")
    assert task["status"] == "pending"
    assert task["is_overdue"] is False

    fetched = client.get(f"/api/tasks/{task['id']}", headers=headers).json()
    assert fetched["tags"] == ["slides"]

    updated = client.put(f"/api/tasks/{task['id']}", json={"title": "Prepare deck"}, headers=headers).json()
    assert updated["title"] == "Prepare deck"
    assert updated["priority"] == "high"

    listing = client.get("/api/tasks", params={"priority": "high"}, headers=headers).json()
    assert listing["pagination"] == {"page": 1, "limit": 20, "total": 1, "pages": 1}

    assert client.delete(f"/api/tasks/{task['id']}", headers=headers).status_code == 204
    assert client.get(f"/api/tasks/{task['id']}", headers=headers).status_code == 404


def test_invalid_reminder_rejected(client, auth):
    response = client.post("/api/tasks", json={
        "title": "Bad", "due_date": iso(timedelta(days=1)), "reminders": [{"time": iso(timedelta(days=2))}],
    }, headers=auth["headers"])

    assert response.status_code == 400
    assert "before due date" in response.json()["detail"]


def test_invalid_priority_rejected(client, auth):
    response = client.post("/api/tasks", json={
        "title": "Bad", "due_date": iso(timedelta(days=1)), "priority": "critical",
    }, headers=auth["headers"])

    assert response.status_code == 422


def test_reminder_endpoints(client, auth):
    headers = auth["headers"]
    task = create_task(client, headers)

    added = client.post(f"/api/tasks/{task['id']}/reminders", json={"time": iso(timedelta(days=1))}, headers=headers)
    assert added.status_code == 201
    reminder_id = added.json()["reminders"][0]["id"]

    removed = client.delete(f"/api/tasks/{task['id']}/reminders/{reminder_id}", headers=headers)
    assert removed.json()["reminders"] == []
    assert client.delete(f"/api/tasks/{task['id']}/reminders/{reminder_id}", headers=headers).status_code == 404


def test_complete_sends_completion_notification(client, auth, transport, realtime):
    headers = auth["headers"]
    task = create_task(client, headers, type="project")

    response = client.patch(f"/api/tasks/{task['id']}/complete", headers=headers)

    assert response.status_code == 200
    assert response.json()["completed_at"] is not None
    assert transport.sent[0]["subject"].endswith("✅ Project Milestone")
    assert realtime.events[0][0] == auth["user_id"]


def test_task_notification_overrides(client, auth):
    headers = auth["headers"]
    task = create_task(client, headers)

    response = client.put(
        f"/api/tasks/{task['id']}/notifications",
        json={"email": {"enabled": False}, "push": {"message": "Slides!"}},
        headers=headers,
    )

    assert response.json()["custom_notifications"]["push"] == {"message": "Slides!"}
    assert response.json()["custom_notifications"]["email"]["enabled"] is False


def test_stats_and_countdown(client, auth):
    headers = auth["headers"]
    create_task(client, headers, due_date=iso(timedelta(hours=2)))

    stats = client.get("/api/tasks/stats", headers=headers).json()
    assert stats["pending_tasks"] == 1
    assert stats["due_today"] == 1

    countdown = client.get("/api/tasks/countdown", headers=headers).json()
    assert len(countdown) == 1


def test_cleanup_endpoints(client, auth):
    headers = auth["headers"]

    stats = client.get("/api/tasks/cleanup/stats", headers=headers).json()
    assert stats["stats"]["total_completed_count"] == 0

    run = client.post("/api/tasks/cleanup/run", headers=headers).json()
    assert run["success"] is True
    assert run["deleted_count"] == 0

    bulk = client.delete("/api/tasks/bulk/completed", params={"older_than": 0}, headers=headers).json()
    assert bulk["deleted_count"] == 0


def test_notification_stats_and_status(client, auth):
    headers = auth["headers"]
    client.post("/api/notifications/test/email",
                json={"email": "dest@example.com", "subject": "Hi", "message": "Hello"}, headers=headers)

    stats = client.get("/api/notifications", headers=headers).json()
    assert stats["stats"] == [{"type": "email", "status": "sent", "count": 1}]

    status = client.get("/api/notifications/status", headers=headers).json()
    assert status["services"]["email"]["configured"] is True
    assert status["metrics"]["counters"]["notifications_delivered_total"] == 1
    assert status["schedulers"]["reminders"]["running"] is False


def test_test_email_when_not_configured(client, auth, services):
    services.notifier.email_transport = FakeEmailTransport(configured=False)

    response = client.post("/api/notifications/test/email",
                           json={"email": "dest@example.com", "subject": "Hi", "message": "Hello"},
                           headers=auth["headers"])

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Gmail service not configured"}

    connection = client.post("/api/notifications/test/connection", headers=auth["headers"])
    assert connection.status_code == 400
    assert connection.json()["success"] is False


def test_send_task_email(client, auth, transport):
    headers = auth["headers"]
    task = create_task(client, headers)

    response = client.post("/api/notifications/send/task-email", json={
        "email": "dest@example.com", "task_id": task["id"], "email_type": "overdue",
    }, headers=headers)

    assert response.json()["success"] is True
    assert transport.sent[0]["subject"] == "💼 🚨 Work Task Overdue"

    missing = client.post("/api/notifications/send/task-email", json={
        "email": "dest@example.com", "task_id": 9999, "email_type": "reminder",
    }, headers=headers)
    assert missing.status_code == 404


def test_send_custom_notification(client, auth, transport):
    response = client.post("/api/notifications/send/custom", json={
        "email": "dest@example.com", "subject": "Weekly plan", "message": "Plan your week",
    }, headers=auth["headers"])

    assert response.json()["success"] is True
    assert transport.sent[0]["subject"] == "Weekly plan"


def test_manual_triggers(client, auth, services, monkeypatch):
    headers = auth["headers"]

    scan = client.post("/api/notifications/trigger/scan", headers=headers).json()
    assert scan["success"] is True
    assert scan["processed"] == 0

    overdue = client.post("/api/notifications/trigger/overdue", headers=headers).json()
    assert overdue["alerted"] == 0

    def broken(start, end):
        from taskmanager.errors import StoreQueryFailed
        raise StoreQueryFailed("query failed")

    monkeypatch.setattr(services.store, "find_due_reminders", broken)
    failed = client.post("/api/notifications/trigger/scan", headers=headers)
    assert failed.status_code == 500
    assert failed.json()["success"] is False


def test_test_reminder_endpoint(client, auth, transport):
    headers = auth["headers"]
    task = create_task(client, headers)

    response = client.post(f"/api/notifications/test/reminder/{task['id']}", headers=headers)
    assert response.json()["success"] is True
    assert len(transport.sent) == 1

    assert client.post("/api/notifications/test/reminder/9999", headers=headers).status_code == 404


@pytest.fixture()
def ws_client(settings, engine, transport, clock):
    from fastapi.testclient import TestClient

    from taskmanager.main import create_app
    from taskmanager.services.container import build_services

    from .fakes import first_choice

    services = build_services(settings, engine, transport=transport, chooser=first_choice, clock=clock)
    app = create_app(settings=settings, engine=engine, services=services)
    with TestClient(app) as test_client:
        yield test_client


def test_websocket_requires_valid_token(ws_client):
    with pytest.raises(WebSocketDisconnect):
        with ws_client.websocket_connect("/ws?token=bogus") as ws:
            ws.receive_text()


def test_websocket_connect_and_ping(ws_client):
    registered = ws_client.post("/auth/register", json={"email": "ws@example.com", "password": "secret123", "name": "Ws"})
    token = registered.json()["token"]

    with ws_client.websocket_connect(f"/ws?token={token}") as ws:
        assert ws.receive_json()["type"] == "connection_established"
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}


def test_websocket_ignores_non_object_messages(ws_client):
    registered = ws_client.post("/auth/register", json={"email": "ws2@example.com", "password": "secret123", "name": "Ws"})
    token = registered.json()["token"]
    manager = ws_client.app.state.services.realtime

    with ws_client.websocket_connect(f"/ws?token={token}") as ws:
        ws.receive_json()
        ws.send_json(5)
        ws.send_json([])
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}
        assert manager.connection_count == 1

    assert manager.connection_count == 0
