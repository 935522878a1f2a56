"""HTTP tests for the student routes."""

from datetime import datetime, timezone

from app.models import StudentExternal
from app.services import external_sync


def login(client, student_id="S1", name="Lina"):
    return client.post("/api/students/login", json={"student_id": student_id, "student_name": name})


def today_key():
    return datetime.now(timezone.utc).date().isoformat()


# =============================================================================
# Login
# =============================================================================


def test_login_creates_student(client):
    response = login(client)

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "New student created successfully"
    assert body["student"] == {"student_id": "S1", "student_name": "Lina", "history": []}


def test_login_existing_student_updates_name(client, db):
    login(client)
    response = login(client, name="Lina K.")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Student login successful"
    assert body["student"]["student_name"] == "Lina K."

    snapshot = db.query(StudentExternal).filter(StudentExternal.student_id == "S1").one()
    assert snapshot.expires_at is not None


def test_login_validates_payload(client):
    response = client.post("/api/students/login", json={"student_id": "S1"})

    assert response.status_code == 422


# =============================================================================
# Usage
# =============================================================================


def test_usage_for_new_student(client, student):
    response = client.get("/api/students/S1/usage")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "used_seconds": 0,
        "remaining_seconds": 1800,
        "limit_seconds": 1800,
        "used_minutes": 0,
        "remaining_minutes": 30,
        "limit_minutes": 30,
    }


def test_usage_unknown_student(client, db):
    response = client.get("/api/students/nobody/usage")

    assert response.status_code == 404
    assert response.json()["detail"] == "Student not found"


def test_heartbeat_credits_reported_seconds(client, student):
    response = client.post("/api/students/S1/usage/heartbeat", json={"seconds": 20})

    assert response.status_code == 200
    assert response.json()["used_seconds"] == 20

    usage = client.get("/api/students/S1/usage").json()
    assert usage["used_seconds"] == 20


def test_heartbeat_without_body_uses_default(client, student):
    response = client.post("/api/students/S1/usage/heartbeat")

    assert response.status_code == 200
    assert response.json()["used_seconds"] == 15


def test_heartbeat_with_overflowing_seconds(client, student):
    response = client.post(
        "/api/students/S1/usage/heartbeat",
        content='{"seconds": 1e400}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json()["used_seconds"] == 0


def test_heartbeat_unknown_student(client, db):
    response = client.post("/api/students/nobody/usage/heartbeat", json={"seconds": 20})

    assert response.status_code == 404


def test_stop_closes_session(client, student, db):
    client.post("/api/students/S1/usage/heartbeat", json={"seconds": 20})
    response = client.post("/api/students/S1/usage/stop")

    assert response.status_code == 200
    assert response.json()["used_seconds"] >= 20
    db.expire_all()
    assert student.current_session_started_at is None


def test_reset_usage(client, student, db):
    student.daily_usage_seconds_by_date = {today_key(): 1800}
    db.commit()

    response = client.post("/api/students/S1/reset-usage")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Usage reset for today"
    assert body["usage"]["used_seconds"] == 0
    assert body["usage"]["remaining_seconds"] == 1800


# =============================================================================
# Chats
# =============================================================================


def test_chat_lifecycle(client, student):
    created = client.post("/api/students/S1/chat", json={"keyword": "Fractions"})
    assert created.status_code == 201
    assert created.json()["chat"]["index"] == 1

    message = client.post(
        "/api/students/S1/chat/1/message",
        json={"role": "user", "content": "What is 1/2 + 1/4?"},
    )
    assert message.status_code == 201
    assert [m["role"] for m in message.json()["chat"]["messages"]] == ["user"]

    renamed = client.put("/api/students/S1/chat/1/keyword", json={"keyword": "Adding fractions"})
    assert renamed.status_code == 200
    assert renamed.json()["chat"]["keyword"] == "Adding fractions"

    history = client.get("/api/students/S1/history").json()["history"]
    assert history[0]["index"] == 1
    assert history[0]["message_count"] == 1

    deleted = client.delete("/api/students/S1/chat/1")
    assert deleted.status_code == 200
    assert deleted.json()["deleted_chat"] == {"index": 1, "keyword": "Adding fractions"}
    assert client.get("/api/students/S1/chat/1").status_code == 404


def test_chat_title_from_first_message(client, student):
    client.post("/api/students/S1/chat", json={"keyword": "First"})
    response = client.post("/api/students/S1/chat", json={"first_message": "What is recursion?"})

    assert response.status_code == 201
    chat = response.json()["chat"]
    assert chat["index"] == 2
    assert chat["keyword"] == "Recursion"


def test_chat_requires_keyword(client, student):
    response = client.post("/api/students/S1/chat", json={})

    assert response.status_code == 400
    assert response.json()["detail"] == "Keyword is required"


def test_message_to_missing_chat(client, student):
    response = client.post(
        "/api/students/S1/chat/9/message",
        json={"role": "assistant", "content": "Hello"},
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Chat not found"


def test_message_rejects_unknown_role(client, student):
    client.post("/api/students/S1/chat", json={"keyword": "Fractions"})
    response = client.post(
        "/api/students/S1/chat/1/message",
        json={"role": "system", "content": "Hello"},
    )

    assert response.status_code == 422


def test_user_message_blocked_when_limit_reached(client, student, db):
    client.post("/api/students/S1/chat", json={"keyword": "Fractions"})
    db.expire_all()
    student.daily_usage_seconds_by_date = {today_key(): 1800}
    db.commit()

    blocked = client.post(
        "/api/students/S1/chat/1/message",
        json={"role": "user", "content": "One more question"},
    )
    assert blocked.status_code == 429
    detail = blocked.json()["detail"]
    assert detail["message"] == "Daily usage limit reached. Please come back tomorrow."
    assert detail["usage"]["remaining_seconds"] == 0

    allowed = client.post(
        "/api/students/S1/chat/1/message",
        json={"role": "assistant", "content": "See you tomorrow!"},
    )
    assert allowed.status_code == 201


# =============================================================================
# External sync
# =============================================================================


def test_sync_reports_failed_resources(client, student, monkeypatch):
    async def fake_fetch(ids, token=None, transport=None):
        return {
            "profile": {"data": {"name": "Lina"}},
            "attendance_summary_monthly": {"data": []},
            "attendance_details": {"data": []},
            "assignments": {"error": True, "message": "boom", "url": "x"},
            "exam_list": {"data": []},
            "exam_data_by_exam_id": {},
            "enrollment": {"data": []},
        }

    monkeypatch.setattr(external_sync, "fetch_external_snapshot", fake_fetch)

    response = client.post("/api/students/S1/sync", json={"exam_ids": ["17", "18"]})

    assert response.status_code == 200
    body = response.json()
    assert body["student_id"] == "S1"
    assert body["failed_resources"] == ["assignments"]
