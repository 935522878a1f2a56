"""Chat and message Pydantic schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ChatCreate(BaseModel):
    """Schema for creating a chat. Keyword is derived from first_message when omitted."""

    keyword: Optional[str] = Field(None, max_length=255)
    first_message: Optional[str] = None


class ChatKeywordUpdate(BaseModel):
    keyword: str = Field(..., min_length=1, max_length=255)


class MessageCreate(BaseModel):
    """Schema for adding a message to a chat."""

    role: str = Field(..., pattern="^(user|assistant)$")
    content: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    role: str
    content: str
    timestamp: Optional[datetime]

    class Config:
        from_attributes = True


class ChatResponse(BaseModel):
    """Schema for a chat with its messages."""

    index: int
    keyword: str
    messages: List[MessageResponse]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ChatEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    chat: ChatResponse


class DeletedChat(BaseModel):
    index: int
    keyword: str


class ChatDeleteResponse(BaseModel):
    success: bool = True
    message: str
    deleted_chat: DeletedChat
