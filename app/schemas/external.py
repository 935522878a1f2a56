"""External school data sync schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class SyncRequest(BaseModel):
    """Optional per-resource IDs; each defaults to the student's own ID."""

    profile_id: Optional[str] = None
    attendance_student_id: Optional[str] = None
    assignments_student_id: Optional[str] = None
    exam_student_id: Optional[str] = None
    enrollment_student_id: Optional[str] = None
    exam_ids: Optional[List[str]] = None


class SyncResponse(BaseModel):
    success: bool = True
    message: str
    student_id: str
    snapshot_updated_at: Optional[datetime]
    failed_resources: List[str] = []
