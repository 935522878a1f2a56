"""
School data synchronization tasks.

Fetches a student's records from the school management API in the
background (e.g. right after login).
"""

import asyncio
import logging
from typing import List, Optional

from celery import shared_task

from app.database import SessionLocal
from app.services.external_sync import SourceIds, sync_student_external

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def sync_student_external_task(self, student_id: str, exam_ids: Optional[List[str]] = None):
    """
    Refresh the external snapshot for one student.

    Args:
        student_id: Student to sync
        exam_ids: Exams to fetch detailed data for
    """
    ids = SourceIds.for_student(student_id, exam_ids)

    try:
        with SessionLocal() as db:
            doc = asyncio.run(sync_student_external(db, student_id, ids))
            updated_at = doc.updated_at
    except Exception as e:
        logger.error(f"External sync failed for student {student_id}: {e}")
        raise self.retry(exc=e)

    return {
        "student_id": student_id,
        "snapshot_updated_at": updated_at.isoformat() if updated_at else None,
    }
