"""Student-related Pydantic schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class StudentLogin(BaseModel):
    """Schema for student login (identity already verified upstream)."""

    student_id: str = Field(..., min_length=1, max_length=64)
    student_name: str = Field(..., min_length=1, max_length=255)


class HistoryItem(BaseModel):
    """One entry of a student's chat list."""

    index: int
    keyword: str
    message_count: int
    last_updated: Optional[datetime]


class StudentResponse(BaseModel):
    """Schema for student response."""

    student_id: str
    student_name: str
    history: List[HistoryItem]


class LoginResponse(BaseModel):
    """Schema for login response."""

    success: bool = True
    message: str
    student: StudentResponse


class HistoryResponse(BaseModel):
    success: bool = True
    history: List[HistoryItem]
