"""Tests for the school API sync using httpx.MockTransport."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app.models import StudentExternal
from app.services.external_sync import (
    SourceIds,
    build_endpoints,
    fetch_external_snapshot,
    get_external_snapshot,
    refresh_external_ttl,
    sync_student_external,
)


def make_transport(seen, failing=()):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        path = request.url.path
        if any(part in path for part in failing):
            return httpx.Response(500, json={"message": "server error"})
        return httpx.Response(200, json={"data": {"path": path}})

    return httpx.MockTransport(handler)


def test_source_ids_default_to_student_id():
    ids = SourceIds.for_student("S1", exam_ids=[17, "18"])

    assert ids.profile_id == "S1"
    assert ids.enrollment_student_id == "S1"
    assert ids.exam_ids == ["17", "18"]


def test_build_endpoints():
    ids = SourceIds.for_student("S1")

    endpoints = build_endpoints(ids, base_url="https://school.test/api/")

    assert endpoints["profile"] == "https://school.test/api/students/S1"
    assert endpoints["exam_list"] == "https://school.test/api/student/ExamList/S1"
    assert set(endpoints) == {
        "profile",
        "attendance_summary_monthly",
        "attendance_details",
        "assignments",
        "exam_list",
        "enrollment",
    }


@pytest.mark.asyncio
async def test_fetch_snapshot_sends_token_and_fetches_exams():
    seen = []
    ids = SourceIds.for_student("S1", exam_ids=["17", "18"])

    snapshot = await fetch_external_snapshot(ids, token="secret", transport=make_transport(seen))

    assert len(seen) == 8
    assert all(r.headers["X-API-TOKEN"] == "secret" for r in seen)
    assert set(snapshot["exam_data_by_exam_id"]) == {"17", "18"}
    assert snapshot["exam_data_by_exam_id"]["18"] == {"data": {"path": "/api/student/ExamData/S1/18"}}


@pytest.mark.asyncio
async def test_failed_resource_becomes_error_marker():
    ids = SourceIds.for_student("S1", exam_ids=[])
    transport = make_transport([], failing=("/student/assignments/",))

    snapshot = await fetch_external_snapshot(ids, token="secret", transport=transport)

    assert snapshot["assignments"]["error"] is True
    assert snapshot["assignments"]["url"].endswith("/student/assignments/S1")
    assert snapshot["profile"] == {"data": {"path": "/api/students/S1"}}


@pytest.mark.asyncio
async def test_sync_upserts_snapshot(db):
    ids = SourceIds.for_student("S1", exam_ids=["17"])

    first = await sync_student_external(db, "S1", ids, token="secret", transport=make_transport([]))
    second = await sync_student_external(db, "S1", ids, token="secret", transport=make_transport([]))

    assert first.id == second.id
    assert db.query(StudentExternal).count() == 1
    assert second.source_ids["exam_ids"] == ["17"]
    assert second.expires_at > datetime.now(timezone.utc)


def test_refresh_ttl_creates_and_slides(db):
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    first = refresh_external_ttl(db, "S1", now=now)
    second = refresh_external_ttl(db, "S1", now=now + timedelta(minutes=5))

    assert first == now + timedelta(minutes=15)
    assert second == now + timedelta(minutes=20)
    assert get_external_snapshot(db, "S1").expires_at == second
    assert get_external_snapshot(db, "S2") is None
