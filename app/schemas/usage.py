"""Usage tracking Pydantic schemas."""

from typing import Optional

from pydantic import BaseModel


class HeartbeatRequest(BaseModel):
    """Client heartbeat; seconds only count when no session slice is open."""

    seconds: Optional[float] = None


class UsageResponse(BaseModel):
    """Today's usage for a student."""

    success: bool = True
    used_seconds: int
    remaining_seconds: int
    limit_seconds: int
    used_minutes: int
    remaining_minutes: int
    limit_minutes: int


class UsageResetResponse(BaseModel):
    success: bool = True
    message: str
    usage: UsageResponse
