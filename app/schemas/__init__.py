"""Pydantic schemas for API request/response validation."""

from app.schemas.student import (
    StudentLogin,
    StudentResponse,
    LoginResponse,
    HistoryItem,
    HistoryResponse,
)
from app.schemas.chat import (
    ChatCreate,
    ChatKeywordUpdate,
    MessageCreate,
    ChatResponse,
    ChatEnvelope,
    ChatDeleteResponse,
)
from app.schemas.usage import (
    HeartbeatRequest,
    UsageResponse,
    UsageResetResponse,
)
from app.schemas.ai import (
    GenerateRequest,
    GenerateResponse,
    PingResponse,
)
from app.schemas.external import (
    SyncRequest,
    SyncResponse,
)

__all__ = [
    # Student
    "StudentLogin",
    "StudentResponse",
    "LoginResponse",
    "HistoryItem",
    "HistoryResponse",
    # Chat
    "ChatCreate",
    "ChatKeywordUpdate",
    "MessageCreate",
    "ChatResponse",
    "ChatEnvelope",
    "ChatDeleteResponse",
    # Usage
    "HeartbeatRequest",
    "UsageResponse",
    "UsageResetResponse",
    # AI
    "GenerateRequest",
    "GenerateResponse",
    "PingResponse",
    # External
    "SyncRequest",
    "SyncResponse",
]
