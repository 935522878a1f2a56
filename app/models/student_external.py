"""
Student External Snapshot Model

Cached academic records pulled from the school management API. Rows expire
after `expires_at` and are removed by the cleanup task.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String

from app.database import Base
from app.utils.db_types import GUID, JSONDict, UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StudentExternal(Base):
    """Opaque per-student snapshot of school data."""

    __tablename__ = "student_externals"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    student_id = Column(String(64), unique=True, nullable=False, index=True)

    # Sliding TTL; None means never synced or never refreshed
    expires_at = Column(UTCDateTime(), nullable=True, index=True)

    # IDs used to fetch each resource
    source_ids = Column(JSONDict(), nullable=True)

    # Raw API payloads (or {"error": true, ...} markers)
    profile = Column(JSONDict(), nullable=True)
    attendance_summary_monthly = Column(JSONDict(), nullable=True)
    attendance_details = Column(JSONDict(), nullable=True)
    assignments = Column(JSONDict(), nullable=True)
    exam_list = Column(JSONDict(), nullable=True)
    exam_data_by_exam_id = Column(JSONDict(), nullable=True)
    enrollment = Column(JSONDict(), nullable=True)

    updated_at = Column(UTCDateTime(), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<StudentExternal {self.student_id}>"
