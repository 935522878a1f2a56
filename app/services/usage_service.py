"""
Usage Service

Loads a student's ledger, runs it through the UsageAccountingEngine and
writes it back. Each mutating call is one transaction with the student row
locked (SELECT ... FOR UPDATE) so concurrent heartbeats for the same student
are serialized on backends that support row locks. SQLite ignores the lock;
there, concurrent updates are last-write-wins.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.models import Student
from app.services.usage_accounting import UsageAccountingEngine, UsageStatus, coerce_seconds

logger = logging.getLogger(__name__)


class StudentNotFound(Exception):
    """No student with the given student_id."""

    def __init__(self, student_id: str):
        super().__init__("Student not found")
        self.student_id = student_id


class UsageLimitExceeded(Exception):
    """Student has no conversation time left today."""

    def __init__(self, status: UsageStatus):
        super().__init__("Daily usage limit reached. Please come back tomorrow.")
        self.status = status


@lru_cache()
def get_usage_engine() -> UsageAccountingEngine:
    """Engine bound to the configured usage timezone."""
    return UsageAccountingEngine(tz=settings.usage_tz)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_student(db: Session, student_id: str, for_update: bool = False) -> Student:
    query = db.query(Student).filter(Student.student_id == student_id)
    if for_update:
        query = query.with_for_update()
    student = query.first()
    if student is None:
        raise StudentNotFound(student_id)
    return student


def clamp_heartbeat_seconds(seconds) -> int:
    """Client-reported seconds, limited to 0..heartbeat_max_seconds."""
    return min(settings.heartbeat_max_seconds, coerce_seconds(seconds))


def get_usage_status(student: Student, now: Optional[datetime] = None) -> UsageStatus:
    return get_usage_engine().usage_status(student.to_ledger(), now or _utcnow())


def ensure_usage_available(student: Student, now: Optional[datetime] = None) -> UsageStatus:
    """
    Raise UsageLimitExceeded when today's time is used up.

    Returns:
        The current usage status otherwise.
    """
    status = get_usage_status(student, now)
    if status.remaining_seconds <= 0:
        logger.info(f"Usage limit reached for student {student.student_id}")
        raise UsageLimitExceeded(status)
    return status


def prune_student_data(student: Student, days: int, now: Optional[datetime] = None) -> dict:
    """
    Apply the retention window to chat history and usage day keys.

    Args:
        student: Student to prune (not committed here)
        days: Retention window in days; 0 keeps everything
        now: Reference time

    Returns:
        Counts of removed chats and usage days
    """
    days = max(0, int(days or 0))
    if days == 0:
        return {"chats": 0, "usage_days": 0}

    now = now or _utcnow()
    removed_chats = student.prune_history_by_days(days, now)

    ledger = student.to_ledger()
    removed_days = get_usage_engine().prune_older_than(ledger, now - timedelta(days=days))
    if removed_days:
        student.apply_ledger(ledger)

    return {"chats": removed_chats, "usage_days": removed_days}


def record_heartbeat(
    db: Session,
    student_id: str,
    seconds=None,
    now: Optional[datetime] = None,
) -> UsageStatus:
    """
    Accrue time for an active client.

    The open session slice is accrued up to `now`. When no slice was open
    (first heartbeat after login or after a reset) the client-reported
    seconds are credited instead. A new slice is then started.

    Reported seconds are never added on top of an accrued slice, so each
    stretch of wall-clock time is counted once.
    """
    now = now or _utcnow()
    engine = get_usage_engine()

    student = get_student(db, student_id, for_update=True)
    ledger = student.to_ledger()

    had_session = ledger.active_session_started_at is not None
    engine.stop_session_and_accrue(ledger, now)
    if not had_session:
        engine.increment_usage(ledger, clamp_heartbeat_seconds(seconds), now)
    engine.start_session_if_needed(ledger, now)

    student.apply_ledger(ledger)
    prune_student_data(student, settings.retention_days, now)
    db.commit()

    status = engine.usage_status(student.to_ledger(), now)
    logger.debug(
        f"Heartbeat student={student_id} used={status.used_seconds}s "
        f"remaining={status.remaining_seconds}s"
    )
    return status


def stop_session(db: Session, student_id: str, now: Optional[datetime] = None) -> UsageStatus:
    """Accrue and close the open session slice (client went idle or logged out)."""
    now = now or _utcnow()
    engine = get_usage_engine()

    student = get_student(db, student_id, for_update=True)
    ledger = student.to_ledger()
    engine.stop_session_and_accrue(ledger, now)
    student.apply_ledger(ledger)
    db.commit()

    return engine.usage_status(ledger, now)


def reset_today_usage(db: Session, student_id: str, now: Optional[datetime] = None) -> UsageStatus:
    """Administrative reset of today's bucket; other days are untouched."""
    now = now or _utcnow()
    engine = get_usage_engine()

    student = get_student(db, student_id, for_update=True)
    ledger = student.to_ledger()
    engine.reset_today(ledger, now)
    student.apply_ledger(ledger)
    db.commit()

    logger.info(f"Reset today's usage for student {student_id}")
    return engine.usage_status(ledger, now)
