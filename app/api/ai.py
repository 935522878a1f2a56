"""
AI tutor API endpoints.

Forwards student questions to the hosted LLM with chat history and school
data as context.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_llm_rate_limiter, usage_limit_exception
from app.config import settings
from app.models import Student
from app.schemas.ai import GenerateRequest, GenerateResponse, PingResponse
from app.services import usage_service
from app.services.external_sync import get_external_snapshot
from app.services.tutor_llm import LLMError, generate_reply
from app.utils.redis_client import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/ping", response_model=PingResponse)
async def ping():
    """Report whether the LLM is configured."""
    return PingResponse(
        api_key_detected=bool(settings.anthropic_api_key),
        model=settings.llm_model,
    )


@router.post("/generate", response_model=GenerateResponse)
def generate(
    data: GenerateRequest,
    request: Request,
    db: Session = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_llm_rate_limiter),
):
    """
    Answer a tutoring question.

    When `student_id` is given the request is checked against the daily
    usage limit, and the chat's recent messages plus the student's school
    snapshot are sent as context.
    """
    client_ip = request.client.host if request.client else "unknown"
    identifier = data.student_id or f"anon:{client_ip}"
    allowed, info = rate_limiter.is_allowed(identifier=identifier, resource="generate")
    request.state.rate_limit_info = info
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": "Rate limit exceeded",
                "limit": info["limit"],
                "reset_in": info["reset_in"],
            },
        )

    history = []
    external = None
    if data.student_id:
        student = db.query(Student).filter(Student.student_id == data.student_id).first()
        if student is not None:
            try:
                usage_service.ensure_usage_available(student)
            except usage_service.UsageLimitExceeded as e:
                raise usage_limit_exception(e.status)

            if data.chat_index:
                chat = student.get_chat_by_index(data.chat_index)
                if chat is not None:
                    history = list(chat.messages)
        external = get_external_snapshot(db, data.student_id)

    try:
        result = generate_reply(
            prompt=data.prompt,
            system_instruction=data.system_instruction,
            history=history,
            external=external,
        )
    except LLMError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": str(e), "hint": e.hint},
        )

    return GenerateResponse(**result)
