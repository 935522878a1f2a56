"""
External Data Sync Service

Pulls a student's academic records from the school management API and
stores them as an opaque snapshot for LLM context.

Individual endpoint failures never abort a sync: the failing resource is
stored as {"error": true, "message": ..., "url": ...}.
"""

import asyncio
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy.orm import Session

from app.config import settings
from app.models import StudentExternal

logger = logging.getLogger(__name__)


@dataclass
class SourceIds:
    """Identifiers used for each school API resource."""

    profile_id: str
    attendance_student_id: str
    assignments_student_id: str
    exam_student_id: str
    enrollment_student_id: str
    exam_ids: List[str] = field(default_factory=list)

    @classmethod
    def for_student(cls, student_id: str, exam_ids: Optional[List[str]] = None) -> "SourceIds":
        """Use the student's own ID for every resource."""
        return cls(
            profile_id=student_id,
            attendance_student_id=student_id,
            assignments_student_id=student_id,
            exam_student_id=student_id,
            enrollment_student_id=student_id,
            exam_ids=[str(x) for x in (exam_ids or settings.default_exam_ids)],
        )


def build_endpoints(ids: SourceIds, base_url: Optional[str] = None) -> Dict[str, str]:
    """Resource name -> URL for the fan-out fetch."""
    base = (base_url or settings.external_api_base_url).rstrip("/")
    return {
        "profile": f"{base}/students/{ids.profile_id}",
        "attendance_summary_monthly": f"{base}/student/attendance/summary/monthly/{ids.attendance_student_id}",
        "attendance_details": f"{base}/student/attendance/details/{ids.attendance_student_id}",
        "assignments": f"{base}/student/assignments/{ids.assignments_student_id}",
        "exam_list": f"{base}/student/ExamList/{ids.exam_student_id}",
        "enrollment": f"{base}/students/enrollment/{ids.enrollment_student_id}",
    }


def exam_data_url(ids: SourceIds, exam_id: str, base_url: Optional[str] = None) -> str:
    base = (base_url or settings.external_api_base_url).rstrip("/")
    return f"{base}/student/ExamData/{ids.exam_student_id}/{exam_id}"


async def fetch_json(client: httpx.AsyncClient, url: str) -> Any:
    """GET a JSON resource, returning an error marker instead of raising."""
    try:
        response = await client.get(url)
        response.raise_for_status()
        return response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"External fetch failed for {url}: {e}")
        return {"error": True, "message": str(e), "url": url}


async def fetch_external_snapshot(
    ids: SourceIds,
    token: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """
    Fetch every resource for one student.

    The six resource calls run concurrently; per-exam data is fetched
    sequentially afterwards.
    """
    headers = {
        "X-API-TOKEN": token or settings.external_api_token,
        "Content-Type": "application/json",
    }
    endpoints = build_endpoints(ids)

    async with httpx.AsyncClient(
        timeout=settings.external_api_timeout,
        headers=headers,
        transport=transport,
    ) as client:
        results = await asyncio.gather(*(fetch_json(client, url) for url in endpoints.values()))
        snapshot = dict(zip(endpoints.keys(), results))

        exam_data = {}
        for exam_id in ids.exam_ids:
            exam_data[str(exam_id)] = await fetch_json(client, exam_data_url(ids, exam_id))
        snapshot["exam_data_by_exam_id"] = exam_data

    failed = [name for name, value in snapshot.items() if isinstance(value, dict) and value.get("error")]
    if failed:
        logger.warning(f"External sync partial failure: {', '.join(failed)}")
    return snapshot


async def sync_student_external(
    db: Session,
    student_id: str,
    ids: Optional[SourceIds] = None,
    token: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> StudentExternal:
    """Fetch and upsert the external snapshot for a student."""
    ids = ids or SourceIds.for_student(student_id)
    logger.info(f"Syncing external data for student {student_id}")

    snapshot = await fetch_external_snapshot(ids, token=token, transport=transport)

    doc = db.query(StudentExternal).filter(StudentExternal.student_id == student_id).first()
    if doc is None:
        doc = StudentExternal(student_id=student_id)
        db.add(doc)

    doc.source_ids = asdict(ids)
    for name, value in snapshot.items():
        setattr(doc, name, value)
    now = datetime.now(timezone.utc)
    doc.updated_at = now
    doc.expires_at = now + timedelta(minutes=settings.external_ttl_minutes)

    db.commit()
    db.refresh(doc)
    return doc


def refresh_external_ttl(db: Session, student_id: str, now: Optional[datetime] = None) -> datetime:
    """
    Slide the snapshot expiry forward while the student is active.

    Creates an empty snapshot row if none exists yet.
    """
    now = now or datetime.now(timezone.utc)
    expires_at = now + timedelta(minutes=settings.external_ttl_minutes)

    doc = db.query(StudentExternal).filter(StudentExternal.student_id == student_id).first()
    if doc is None:
        doc = StudentExternal(student_id=student_id)
        db.add(doc)
    doc.expires_at = expires_at
    db.commit()
    return expires_at


def get_external_snapshot(db: Session, student_id: str) -> Optional[StudentExternal]:
    return db.query(StudentExternal).filter(StudentExternal.student_id == student_id).first()
