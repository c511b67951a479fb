"""
Integration Tests for the HTTP API

Runs the FastAPI app in-process over httpx's ASGI transport against a
per-test SQLite file. The lifespan is not run, so the fixture creates the
operator account itself.
"""
from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from dailyquiz.database import get_db
from dailyquiz.main import app
from dailyquiz.services import admin_service, question_service

ADMIN_USERNAME = "operator"
ADMIN_PASSWORD = "s3cret-pass"


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async with session_factory() as session:
        await admin_service.ensure_default_admin(session, ADMIN_USERNAME, ADMIN_PASSWORD)

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def todays_question(session_factory):
    async with session_factory() as session:
        question = await question_service.create_question(session, {
            "content": "2 + 2 = ?",
            "options": ["3", "4", "5", "22"],
            "correct_answer_index": 1,
            "quiz_date": datetime.now().strftime("%Y-%m-%d"),
            "order": 1,
            "is_active": True,
        })
        return question.id


async def _identify(client: AsyncClient, name: str, device_id: str) -> dict:
    response = await client.post("/api/identify", json={"name": name, "device_id": device_id})
    assert response.status_code == 200, response.text
    return response.json()


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def _admin_headers(client: AsyncClient) -> dict:
    response = await client.post(
        "/api/admin/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200, response.text
    return _auth(response.json()["access_token"])


# ================= PARTICIPANT FLOW =================

@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_answer_daily_question(client, todays_question):
    identity = await _identify(client, "Alice", "device-alice-0001")
    headers = _auth(identity["token"])

    daily = await client.get("/api/question/daily", headers=headers)
    assert daily.status_code == 200
    body = daily.json()
    assert body["id"] == todays_question
    assert "correct_answer_index" not in body

    submit = await client.post("/api/submit", headers=headers, json={
        "question_id": todays_question, "answer_index": 1, "device_id": "device-alice-0001",
    })
    assert submit.status_code == 200
    assert submit.json()["message"] == "Submitted"

    again = await client.post("/api/submit", headers=headers, json={
        "question_id": todays_question, "answer_index": 2, "device_id": "device-alice-0001",
    })
    assert again.status_code == 409
    assert again.json()["code"] == "ALREADY_SUBMITTED"

    after = await client.get("/api/question/daily", headers=headers)
    assert after.status_code == 200
    assert after.json() is None


@pytest.mark.asyncio
async def test_submit_unknown_question(client):
    identity = await _identify(client, "Alice", "device-alice-0001")

    response = await client.post("/api/submit", headers=_auth(identity["token"]), json={
        "question_id": 4242, "answer_index": 0, "device_id": "device-alice-0001",
    })
    assert response.status_code == 404
    assert response.json()["code"] == "QUESTION_NOT_FOUND"


@pytest.mark.asyncio
async def test_submit_from_another_device_refused(client, todays_question):
    identity = await _identify(client, "Alice", "device-alice-0001")
    headers = _auth(identity["token"])

    response = await client.post("/api/submit", headers=headers, json={
        "question_id": todays_question, "answer_index": 1, "device_id": "device-mallory-0001",
    })
    assert response.status_code == 403
    assert response.json()["code"] == "DEVICE_MISMATCH"

    # Nothing was recorded, so the question is still offered
    daily = await client.get("/api/question/daily", headers=headers)
    assert daily.json()["id"] == todays_question


@pytest.mark.asyncio
async def test_submit_before_question_opens(client):
    admin = await _admin_headers(client)
    tomorrow = (datetime.now() + timedelta(days=1)).strftime("%Y-%m-%d")
    created = await client.post("/api/admin/questions", headers=admin, json={
        "content": "Largest ocean?",
        "options": ["Atlantic", "Indian", "Arctic", "Pacific"],
        "correct_answer_index": 3,
        "quiz_date": tomorrow,
        "is_active": True,
    })
    assert created.status_code == 201

    identity = await _identify(client, "Alice", "device-alice-0001")
    response = await client.post("/api/submit", headers=_auth(identity["token"]), json={
        "question_id": created.json()["id"], "answer_index": 3, "device_id": "device-alice-0001",
    })
    assert response.status_code == 403
    assert response.json()["code"] == "QUESTION_NOT_OPEN"

@pytest.mark.asyncio
async def test_identify_conflict_and_validation(client):
    await _identify(client, "Alice", "device-alice-0001")

    conflict = await client.post("/api/identify", json={"name": "Alice", "device_id": "device-other-0002"})
    assert conflict.status_code == 403
    assert conflict.json()["code"] == "NAME_DEVICE_CONFLICT"

    invalid = await client.post("/api/identify", json={"name": "A!", "device_id": "short"})
    assert invalid.status_code == 422
    assert invalid.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_missing_token_rejected(client):
    response = await client.get("/api/question/daily")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_heartbeat(client):
    identity = await _identify(client, "Alice", "device-alice-0001")

    response = await client.post(
        "/api/heartbeat", headers=_auth(identity["token"]), json={"device_id": "device-alice-0001"}
    )
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}

    empty = await client.post("/api/heartbeat", headers=_auth(identity["token"]))
    assert empty.status_code == 200

    mismatch = await client.post(
        "/api/heartbeat", headers=_auth(identity["token"]), json={"device_id": "device-mallory-0001"}
    )
    assert mismatch.status_code == 403
    assert mismatch.json()["code"] == "DEVICE_MISMATCH"


@pytest.mark.asyncio
async def test_banned_participant_locked_out(client, todays_question):
    identity = await _identify(client, "Eve", "device-eve-00001")
    admin = await _admin_headers(client)

    ban = await client.post(
        f"/api/admin/participants/{identity['participant']['id']}/ban", headers=admin, json={"banned": True}
    )
    assert ban.status_code == 200
    assert ban.json()["is_banned"] is True

    daily = await client.get("/api/question/daily", headers=_auth(identity["token"]))
    assert daily.status_code == 403
    assert daily.json()["code"] == "BANNED"


# ================= OPERATOR FLOW =================

@pytest.mark.asyncio
async def test_admin_login_rejects_bad_password(client):
    response = await client.post("/api/admin/login", json={"username": ADMIN_USERNAME, "password": "nope"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_participant_token_cannot_reach_admin(client):
    identity = await _identify(client, "Alice", "device-alice-0001")

    response = await client.get("/api/admin/stats", headers=_auth(identity["token"]))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_question_lifecycle(client):
    admin = await _admin_headers(client)
    today = datetime.now().strftime("%Y-%m-%d")

    created = await client.post("/api/admin/questions", headers=admin, json={
        "content": "Capital of Japan?",
        "options": ["Osaka", "Kyoto", "Tokyo", "Nagoya"],
        "correct_answer_index": 2,
        "quiz_date": today,
        "scheduled_time": "",
        "is_active": True,
    })
    assert created.status_code == 201
    question = created.json()
    assert question["scheduled_time"] is None
    assert question["epoch"] == 0

    identity = await _identify(client, "Alice", "device-alice-0001")
    await client.post("/api/submit", headers=_auth(identity["token"]), json={
        "question_id": question["id"], "answer_index": 2, "device_id": "device-alice-0001",
    })

    blocked = await client.delete(f"/api/admin/questions/{question['id']}", headers=admin)
    assert blocked.status_code == 409
    assert blocked.json()["code"] == "DELETE_BLOCKED"

    cleared = await client.delete(f"/api/admin/questions/{question['id']}/submissions", headers=admin)
    assert cleared.json()["deleted"] == 1

    deleted = await client.delete(f"/api/admin/questions/{question['id']}", headers=admin)
    assert deleted.status_code == 200

    missing = await client.put(f"/api/admin/questions/{question['id']}", headers=admin, json={"order": 2})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_results_reset_and_export(client, todays_question):
    admin = await _admin_headers(client)
    for name in ("Alice", "Bob"):
        identity = await _identify(client, name, f"device-{name.lower()}-0001")
        await client.post("/api/submit", headers=_auth(identity["token"]), json={
            "question_id": todays_question, "answer_index": 1, "device_id": f"device-{name.lower()}-0001",
        })

    results = await client.get("/api/admin/results", headers=admin)
    assert results.status_code == 200
    board = results.json()
    assert [(e["rank"], e["participant_name"], e["total_score"]) for e in board] == [
        (1, "Alice", 500.0),
        (2, "Bob", 490.0),
    ]

    stats = await client.get("/api/admin/stats", headers=admin)
    assert stats.json()["total_submissions_today"] == 2
    assert stats.json()["active_questions"] == 1

    export = await client.get("/api/admin/export", headers=admin)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert "attachment" in export.headers["content-disposition"]
    assert export.content[:2] == b"PK"

    reset = await client.post("/api/admin/reset", headers=admin)
    assert reset.json()["new_epoch"] == 1

    after = await client.get("/api/admin/results", headers=admin)
    assert after.json() == []
    history = await client.get("/api/admin/results", headers=admin, params={"epoch": 0})
    assert len(history.json()) == 2
