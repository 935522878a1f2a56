"""
Tutor LLM Service

Assembles the conversation sent to Claude (recent chat turns, a compact JSON
summary of the student's school records, and the new question) and calls the
Messages API with retries on transient failures.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

import anthropic

from app.config import settings

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)


class LLMError(Exception):
    """LLM call failed; `hint` is a user-facing troubleshooting note."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


def error_hint(message: str) -> Optional[str]:
    lowered = message.lower()
    if "api key" in lowered or "invalid" in lowered:
        return "The API key may be missing or invalid."
    if "quota" in lowered or "rate limit" in lowered:
        return "Quota exceeded for the configured API key."
    if "network" in lowered or "connection" in lowered:
        return "Network issue while contacting the model provider."
    return None


# =============================================================================
# Student context
# =============================================================================

def extract_assignments(raw: Any) -> List[Any]:
    """Find the assignment list in the shapes the school API returns."""
    if not raw:
        return []
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, dict):
        return []

    for key in ("data", "assignments", "Assignments", "items", "result"):
        value = raw.get(key)
        if isinstance(value, list) and value:
            return value
    for value in raw.values():
        if isinstance(value, list) and value:
            return value
    return []


def _first(item: dict, *keys):
    for key in keys:
        value = item.get(key)
        if value:
            return value
    return None


def summarize_assignments(assignments: Sequence[Any]) -> Dict[str, Any]:
    if not isinstance(assignments, (list, tuple)):
        return {"count": 0}

    preview = []
    for item in assignments[:10]:
        item = item if isinstance(item, dict) else {}
        preview.append({
            "id": _first(item, "id", "AssignmentId", "_id"),
            "title": _first(item, "title", "Title", "name", "Name") or "Assignment",
            "subject": _first(item, "subject", "Subject", "course", "Course"),
            "status": _first(item, "status", "Status"),
            "due_date": _first(item, "dueDate", "DueDate", "due", "Due", "deadline"),
            "score": _first(item, "score", "Score"),
        })

    upcoming = [a for a in preview if a["due_date"]]
    return {"count": len(assignments), "preview": preview, "upcoming": upcoming[:5]}


def latest_exam_data(exam_list: Any, exam_data_by_exam_id: Optional[dict]) -> Any:
    """Exam data for the last exam in the exam list, if it was fetched."""
    rows = exam_list.get("data") if isinstance(exam_list, dict) else None
    if not isinstance(rows, list) or not rows or not exam_data_by_exam_id:
        return None
    last = rows[-1] if isinstance(rows[-1], dict) else {}
    exam_id = last.get("id") or last.get("ExamId")
    if exam_id is None:
        return None
    return exam_data_by_exam_id.get(str(exam_id))


def build_context_snippet(external, max_chars: Optional[int] = None) -> str:
    """Compact JSON summary of a StudentExternal snapshot, or "" if none."""
    if external is None:
        return ""
    max_chars = max_chars or settings.llm_context_max_chars

    details = external.attendance_details
    if isinstance(details, dict) and isinstance(details.get("data"), list):
        latest_attendance = details["data"][-5:]
    else:
        latest_attendance = details

    summary = {
        "profile": external.profile,
        "attendance_summary_monthly": external.attendance_summary_monthly,
        "latest_attendance": latest_attendance,
        "assignments_summary": summarize_assignments(extract_assignments(external.assignments)),
        "exam_list": external.exam_list,
        "latest_exam_data": latest_exam_data(external.exam_list, external.exam_data_by_exam_id),
        "enrollment": external.enrollment,
    }
    payload = json.dumps(summary, default=str)[:max_chars]
    return f"Contextual student data (JSON):\n{payload}"


# =============================================================================
# Conversation assembly
# =============================================================================

def build_messages(
    prompt: str,
    history: Sequence[Any] = (),
    context_snippet: str = "",
) -> List[Dict[str, str]]:
    """
    Build an alternating user/assistant message list ending with the question.

    Consecutive turns from the same role are merged and a leading assistant
    turn is dropped, as the Messages API requires.
    """
    turns = [(m.role, m.content) for m in history if m.content]
    question = f"{context_snippet}\n\nUser question: {prompt}" if context_snippet else f"User question: {prompt}"
    turns.append(("user", question))

    messages: List[Dict[str, str]] = []
    for role, content in turns:
        role = "user" if role == "user" else "assistant"
        if not messages and role == "assistant":
            continue
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"] += f"\n\n{content}"
        else:
            messages.append({"role": role, "content": content})
    return messages


def _response_text(message) -> str:
    parts = [block.text for block in (message.content or []) if hasattr(block, "text")]
    return "".join(parts)


def generate_reply(
    prompt: str,
    system_instruction: Optional[str] = None,
    history: Sequence[Any] = (),
    external=None,
    client: Optional[anthropic.Anthropic] = None,
) -> Dict[str, Any]:
    """
    Ask the tutor model for a reply.

    Args:
        prompt: The student's question
        system_instruction: Optional system prompt from the client
        history: Recent ChatMessage rows, oldest first
        external: StudentExternal snapshot for context, if any
        client: Anthropic client (created from settings when omitted)

    Returns:
        {"text", "model", "used_context", "tokens_used"}

    Raises:
        LLMError: if the key is missing or every attempt fails
    """
    if client is None:
        if not settings.anthropic_api_key:
            raise LLMError("ANTHROPIC_API_KEY is not set", error_hint("api key"))
        client = anthropic.Anthropic(api_key=settings.anthropic_api_key)

    context_snippet = build_context_snippet(external)
    recent = list(history)[-settings.llm_history_messages:] if settings.llm_history_messages else []
    request = {
        "model": settings.llm_model,
        "max_tokens": settings.llm_max_tokens,
        "temperature": settings.llm_temperature,
        "messages": build_messages(prompt, recent, context_snippet),
    }
    if system_instruction:
        request["system"] = system_instruction

    attempts = max(1, settings.llm_max_retries)
    for attempt in range(1, attempts + 1):
        try:
            message = client.messages.create(**request)
            break
        except RETRYABLE_ERRORS as e:
            if attempt == attempts:
                logger.error(f"Anthropic API error after {attempt} attempts: {e}")
                raise LLMError(str(e), error_hint(str(e))) from e
            delay = 2 ** (attempt - 1)
            logger.warning(f"Anthropic API error (attempt {attempt}/{attempts}), retrying in {delay}s: {e}")
            time.sleep(delay)
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise LLMError(str(e), error_hint(str(e))) from e

    input_tokens = message.usage.input_tokens if message.usage else 0
    output_tokens = message.usage.output_tokens if message.usage else 0
    logger.info(f"Claude reply received, stop_reason: {message.stop_reason}, tokens: {input_tokens}+{output_tokens}")

    return {
        "text": _response_text(message),
        "model": settings.llm_model,
        "used_context": bool(context_snippet),
        "tokens_used": input_tokens + output_tokens,
    }
