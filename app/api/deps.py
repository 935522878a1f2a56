"""
API Dependencies

Database sessions, student lookup, rate limiting and the shared error
translations used by the route modules.
"""

import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models import Student
from app.services.usage_accounting import UsageStatus
from app.services.usage_service import StudentNotFound, get_student
from app.utils.redis_client import RateLimiter, llm_rate_limiter

logger = logging.getLogger(__name__)


def get_student_or_404(student_id: str, db: Session = Depends(get_db)) -> Student:
    """Resolve the `student_id` path parameter to a Student."""
    try:
        return get_student(db, student_id)
    except StudentNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )


def get_llm_rate_limiter() -> RateLimiter:
    return llm_rate_limiter


def usage_payload(usage: UsageStatus) -> dict:
    """Usage status plus rounded minute mirrors for display."""
    return usage.to_dict(include_minutes=True)


def usage_limit_exception(usage: UsageStatus) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={
            "message": "Daily usage limit reached. Please come back tomorrow.",
            "usage": usage_payload(usage),
        },
    )


def not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")
