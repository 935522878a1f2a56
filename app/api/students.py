"""
Student API endpoints.

Login, daily usage tracking, chat history and external data sync.
"""

import logging
from dataclasses import replace

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import (
    get_db,
    get_student_or_404,
    not_found,
    usage_limit_exception,
    usage_payload,
)
from app.config import settings
from app.models import Student, Chat
from app.schemas.student import StudentLogin, StudentResponse, LoginResponse, HistoryResponse
from app.schemas.chat import (
    ChatCreate,
    ChatKeywordUpdate,
    MessageCreate,
    ChatResponse,
    ChatEnvelope,
    ChatDeleteResponse,
    DeletedChat,
    MessageResponse,
)
from app.schemas.usage import HeartbeatRequest, UsageResponse, UsageResetResponse
from app.schemas.external import SyncRequest, SyncResponse
from app.services.chat_titles import generate_chat_title
from app.services.external_sync import SourceIds, refresh_external_ttl, sync_student_external
from app.services import usage_service
from app.services.usage_service import UsageLimitExceeded

logger = logging.getLogger(__name__)

router = APIRouter()


def _chat_response(chat: Chat) -> ChatResponse:
    return ChatResponse(
        index=chat.chat_index,
        keyword=chat.keyword,
        messages=[MessageResponse.model_validate(m) for m in chat.messages],
        created_at=chat.created_at,
        updated_at=chat.updated_at,
    )


def _student_response(student: Student) -> StudentResponse:
    return StudentResponse(
        student_id=student.student_id,
        student_name=student.student_name,
        history=student.history_summary(),
    )


def _refresh_ttl_quietly(db: Session, student_id: str) -> None:
    """Slide the external snapshot TTL; failures never block the caller."""
    try:
        refresh_external_ttl(db, student_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Failed to refresh external TTL for {student_id}: {e}")


def _get_chat_or_404(student: Student, index: int) -> Chat:
    chat = student.get_chat_by_index(index)
    if chat is None:
        raise not_found("Chat")
    return chat


# =============================================================================
# Login
# =============================================================================

@router.post("/login", response_model=LoginResponse)
async def login(
    data: StudentLogin,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Find or create a student.

    Existing students get their name refreshed and old data pruned.
    """
    student = db.query(Student).filter(Student.student_id == data.student_id).first()

    if student is None:
        student = Student(
            student_id=data.student_id,
            student_name=data.student_name,
            daily_usage_seconds_by_date={},
            daily_usage_seconds_limit=settings.daily_usage_limit_seconds,
        )
        db.add(student)
        db.commit()
        db.refresh(student)
        logger.info(f"Created new student {student.student_id}")

        response.status_code = status.HTTP_201_CREATED
        return LoginResponse(
            message="New student created successfully",
            student=_student_response(student),
        )

    if student.student_name != data.student_name:
        student.student_name = data.student_name
    usage_service.prune_student_data(student, settings.retention_days)
    db.commit()

    _refresh_ttl_quietly(db, student.student_id)

    return LoginResponse(
        message="Student login successful",
        student=_student_response(student),
    )


# =============================================================================
# Usage tracking
# =============================================================================

@router.get("/{student_id}/usage", response_model=UsageResponse)
async def get_usage(student: Student = Depends(get_student_or_404)):
    """Get today's usage status."""
    return UsageResponse(**usage_payload(usage_service.get_usage_status(student)))


@router.post("/{student_id}/usage/heartbeat", response_model=UsageResponse)
async def usage_heartbeat(
    student_id: str,
    data: HeartbeatRequest = HeartbeatRequest(),
    db: Session = Depends(get_db),
):
    """
    Accrue conversation time for an active client.

    Called periodically by the chat UI while the student is active.
    """
    seconds = settings.heartbeat_default_seconds if data.seconds is None else data.seconds
    try:
        usage = usage_service.record_heartbeat(db, student_id, seconds)
    except usage_service.StudentNotFound:
        raise not_found("Student")

    _refresh_ttl_quietly(db, student_id)
    return UsageResponse(**usage_payload(usage))


@router.post("/{student_id}/usage/stop", response_model=UsageResponse)
async def usage_stop(student_id: str, db: Session = Depends(get_db)):
    """Close the open session slice, e.g. when the chat window is closed."""
    try:
        usage = usage_service.stop_session(db, student_id)
    except usage_service.StudentNotFound:
        raise not_found("Student")
    return UsageResponse(**usage_payload(usage))


@router.post("/{student_id}/reset-usage", response_model=UsageResetResponse)
async def reset_usage(student_id: str, db: Session = Depends(get_db)):
    """
    Reset today's usage and stop any active session.

    Administrative endpoint.
    """
    try:
        usage = usage_service.reset_today_usage(db, student_id)
    except usage_service.StudentNotFound:
        raise not_found("Student")
    return UsageResetResponse(
        message="Usage reset for today",
        usage=UsageResponse(**usage_payload(usage)),
    )


# =============================================================================
# Chat history
# =============================================================================

@router.get("/{student_id}/history", response_model=HistoryResponse)
async def get_history(student: Student = Depends(get_student_or_404)):
    """Get the student's chat list, most recent first."""
    return HistoryResponse(history=student.history_summary())


@router.get("/{student_id}/chat/{index}", response_model=ChatEnvelope)
async def get_chat(index: int, student: Student = Depends(get_student_or_404)):
    return ChatEnvelope(chat=_chat_response(_get_chat_or_404(student, index)))


@router.post("/{student_id}/chat", response_model=ChatEnvelope, status_code=status.HTTP_201_CREATED)
async def create_chat(
    data: ChatCreate,
    student: Student = Depends(get_student_or_404),
    db: Session = Depends(get_db),
):
    """
    Create a new chat.

    The keyword falls back to a title generated from `first_message`.
    """
    keyword = (data.keyword or "").strip()
    if not keyword and data.first_message:
        keyword = generate_chat_title(data.first_message)
    if not keyword:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Keyword is required",
        )

    chat = student.add_chat(keyword)
    db.commit()
    db.refresh(chat)

    return ChatEnvelope(message="New chat created successfully", chat=_chat_response(chat))


@router.post("/{student_id}/chat/{index}/message", response_model=ChatEnvelope, status_code=status.HTTP_201_CREATED)
async def add_message(
    index: int,
    data: MessageCreate,
    student: Student = Depends(get_student_or_404),
    db: Session = Depends(get_db),
):
    """
    Append a message to a chat.

    User messages are rejected with 429 once today's time is used up.
    """
    if data.role == "user":
        try:
            usage_service.ensure_usage_available(student)
        except UsageLimitExceeded as e:
            raise usage_limit_exception(e.status)

    chat = student.add_message_to_chat(index, data.role, data.content)
    if chat is None:
        raise not_found("Chat")
    db.commit()
    db.refresh(chat)

    return ChatEnvelope(message="Message added successfully", chat=_chat_response(chat))


@router.put("/{student_id}/chat/{index}/keyword", response_model=ChatEnvelope)
async def update_chat_keyword(
    index: int,
    data: ChatKeywordUpdate,
    student: Student = Depends(get_student_or_404),
    db: Session = Depends(get_db),
):
    chat = _get_chat_or_404(student, index)
    chat.keyword = data.keyword.strip()
    db.commit()
    db.refresh(chat)

    return ChatEnvelope(message="Chat keyword updated successfully", chat=_chat_response(chat))


@router.delete("/{student_id}/chat/{index}", response_model=ChatDeleteResponse)
async def delete_chat(
    index: int,
    student: Student = Depends(get_student_or_404),
    db: Session = Depends(get_db),
):
    chat = _get_chat_or_404(student, index)
    deleted = DeletedChat(index=chat.chat_index, keyword=chat.keyword)

    student.chats.remove(chat)
    db.commit()

    return ChatDeleteResponse(message="Chat deleted successfully", deleted_chat=deleted)


# =============================================================================
# External data
# =============================================================================

@router.post("/{student_id}/sync", response_model=SyncResponse)
async def sync_external(
    data: SyncRequest = SyncRequest(),
    student: Student = Depends(get_student_or_404),
    db: Session = Depends(get_db),
):
    """Refresh the student's school data snapshot."""
    defaults = SourceIds.for_student(student.student_id, data.exam_ids)
    overrides = data.model_dump(exclude_none=True, exclude={"exam_ids"})
    ids = replace(defaults, **overrides)

    doc = await sync_student_external(db, student.student_id, ids)

    failed = [
        name for name in ("profile", "attendance_summary_monthly", "attendance_details",
                          "assignments", "exam_list", "enrollment")
        if isinstance(getattr(doc, name), dict) and getattr(doc, name).get("error")
    ]
    return SyncResponse(
        message="Synced external data",
        student_id=student.student_id,
        snapshot_updated_at=doc.updated_at,
        failed_resources=failed,
    )
