"""
Student Models

Student record, chat transcripts and the persisted usage ledger.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import Column, String, Integer, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.database import Base
from app.services.usage_accounting import DEFAULT_DAILY_LIMIT_SECONDS, UsageLedger
from app.utils.db_types import GUID, JSONDict, UTCDateTime

MESSAGE_ROLES = ("user", "assistant")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Student(Base):
    """Student account with usage tracking."""

    __tablename__ = "students"

    # Primary key
    id = Column(GUID(), primary_key=True, default=uuid.uuid4)

    # Identity (from the school platform)
    student_id = Column(String(64), unique=True, nullable=False, index=True)
    student_name = Column(String(255), nullable=False)

    # Usage ledger: YYYY-MM-DD -> seconds
    daily_usage_seconds_by_date = Column(JSONDict(), nullable=False, default=dict)
    daily_usage_seconds_limit = Column(Integer, nullable=False, default=DEFAULT_DAILY_LIMIT_SECONDS)
    current_session_started_at = Column(UTCDateTime(), nullable=True)

    # Timestamps
    created_at = Column(UTCDateTime(), default=_utcnow)
    updated_at = Column(UTCDateTime(), default=_utcnow, onupdate=_utcnow)

    # Relationships
    chats = relationship(
        "Chat",
        back_populates="student",
        cascade="all, delete-orphan",
        order_by="Chat.chat_index",
    )

    def __repr__(self):
        return f"<Student {self.student_id}>"

    # ==========================================================================
    # Usage ledger
    # ==========================================================================

    def to_ledger(self) -> UsageLedger:
        return UsageLedger(
            daily_usage_seconds=dict(self.daily_usage_seconds_by_date or {}),
            daily_limit_seconds=self.daily_usage_seconds_limit,
            active_session_started_at=self.current_session_started_at,
        )

    def apply_ledger(self, ledger: UsageLedger) -> None:
        """Copy ledger state back onto the row (new dict so the change is flushed)."""
        self.daily_usage_seconds_by_date = dict(ledger.daily_usage_seconds)
        self.daily_usage_seconds_limit = ledger.daily_limit_seconds
        self.current_session_started_at = ledger.active_session_started_at

    # ==========================================================================
    # Chat history
    # ==========================================================================

    def next_chat_index(self) -> int:
        if not self.chats:
            return 1
        return max(chat.chat_index for chat in self.chats) + 1

    def add_chat(self, keyword: str) -> "Chat":
        chat = Chat(chat_index=self.next_chat_index(), keyword=keyword.strip())
        self.chats.append(chat)
        return chat

    def get_chat_by_index(self, index: int) -> Optional["Chat"]:
        for chat in self.chats:
            if chat.chat_index == index:
                return chat
        return None

    def add_message_to_chat(self, index: int, role: str, content: str) -> Optional["Chat"]:
        chat = self.get_chat_by_index(index)
        if chat is None:
            return None
        now = _utcnow()
        chat.messages.append(ChatMessage(role=role, content=content, timestamp=now))
        chat.updated_at = now
        return chat

    def history_summary(self) -> List[dict]:
        """Chat index/keyword/count, most recently updated first."""
        summary = [
            {
                "index": chat.chat_index,
                "keyword": chat.keyword,
                "message_count": len(chat.messages),
                "last_updated": chat.updated_at,
            }
            for chat in self.chats
        ]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(summary, key=lambda c: c["last_updated"] or epoch, reverse=True)

    def prune_history_by_days(self, days: int, now: Optional[datetime] = None) -> int:
        """Drop chats not touched within `days`. 0 keeps everything."""
        days = max(0, int(days or 0))
        if days == 0:
            return 0
        cutoff = (now or _utcnow()) - timedelta(days=days)
        stale = [
            chat for chat in self.chats
            if (chat.updated_at or chat.created_at or cutoff) < cutoff
        ]
        for chat in stale:
            self.chats.remove(chat)
        return len(stale)


class Chat(Base):
    """A single tutoring conversation."""

    __tablename__ = "chats"
    __table_args__ = (
        UniqueConstraint("student_pk", "chat_index", name="uq_chats_student_index"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    student_pk = Column(GUID(), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)

    chat_index = Column(Integer, nullable=False)
    keyword = Column(String(255), nullable=False)

    created_at = Column(UTCDateTime(), default=_utcnow)
    updated_at = Column(UTCDateTime(), default=_utcnow)

    student = relationship("Student", back_populates="chats")
    messages = relationship(
        "ChatMessage",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="ChatMessage.id",
    )

    def __repr__(self):
        return f"<Chat {self.chat_index} - {self.keyword}>"


class ChatMessage(Base):
    """One user or assistant turn."""

    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    chat_id = Column(GUID(), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)

    role = Column(String(20), nullable=False)  # user, assistant
    content = Column(Text, nullable=False)
    timestamp = Column(UTCDateTime(), default=_utcnow)

    chat = relationship("Chat", back_populates="messages")
