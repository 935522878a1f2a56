"""
Cleanup and maintenance tasks.

Applies the retention window to usage ledgers and chat history, and removes
expired school data snapshots.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from celery import shared_task

from app.config import settings
from app.database import SessionLocal
from app.models import Student, StudentExternal
from app.services.usage_service import prune_student_data

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def prune_usage_retention(self, days: Optional[int] = None, batch_size: int = 500):
    """
    Prune usage day keys and chats older than the retention window.

    Args:
        days: Retention window in days (defaults to RETENTION_DAYS; 0 keeps all)
        batch_size: Students loaded per query
    """
    days = settings.retention_days if days is None else days
    logger.info(f"Pruning usage and chat history older than {days} days")

    now = datetime.now(timezone.utc)
    students = 0
    usage_days = 0
    chats = 0

    with SessionLocal() as db:
        offset = 0
        while True:
            batch = (
                db.query(Student)
                .order_by(Student.student_id)
                .offset(offset)
                .limit(batch_size)
                .all()
            )
            if not batch:
                break

            for student in batch:
                removed = prune_student_data(student, days, now)
                usage_days += removed["usage_days"]
                chats += removed["chats"]
                students += 1

            db.commit()
            offset += batch_size

    logger.info(f"Pruned {usage_days} usage days and {chats} chats across {students} students")
    return {
        "students": students,
        "usage_days": usage_days,
        "chats": chats,
    }


@shared_task(bind=True)
def cleanup_expired_externals(self):
    """Delete school data snapshots past their expiry."""
    now = datetime.now(timezone.utc)

    with SessionLocal() as db:
        deleted = db.query(StudentExternal).filter(
            StudentExternal.expires_at.isnot(None),
            StudentExternal.expires_at < now,
        ).delete(synchronize_session=False)
        db.commit()

    logger.info(f"Deleted {deleted} expired external snapshots")
    return {"deleted": deleted}
