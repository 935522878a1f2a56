"""AI generation Pydantic schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Schema for a tutor question."""

    prompt: str = Field(..., min_length=1, max_length=5000)
    system_instruction: Optional[str] = None
    student_id: Optional[str] = None
    chat_index: Optional[int] = None


class GenerateResponse(BaseModel):
    success: bool = True
    text: str
    model: str
    provider: str = "anthropic"
    used_context: bool
    tokens_used: int = 0


class PingResponse(BaseModel):
    success: bool = True
    api_key_detected: bool
    model: str
    provider: str = "anthropic"
