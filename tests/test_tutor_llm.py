"""Tests for prompt assembly and the Anthropic call wrapper."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import anthropic
import httpx
import pytest

from app.config import settings
from app.services import tutor_llm
from app.services.tutor_llm import (
    LLMError,
    build_context_snippet,
    build_messages,
    extract_assignments,
    generate_reply,
    latest_exam_data,
    summarize_assignments,
)


def turn(role, content):
    return SimpleNamespace(role=role, content=content)


def claude_message(text="Three quarters."):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=30, output_tokens=12),
        stop_reason="end_turn",
    )


def connection_error():
    return anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))


# =============================================================================
# build_messages
# =============================================================================


def test_build_messages_without_history():
    assert build_messages("What is a prime?") == [
        {"role": "user", "content": "User question: What is a prime?"},
    ]


def test_build_messages_prepends_context():
    messages = build_messages("Am I passing?", context_snippet="Contextual student data (JSON):\n{}")

    assert messages[-1]["content"] == "Contextual student data (JSON):\n{}\n\nUser question: Am I passing?"


def test_build_messages_merges_and_trims_turns():
    history = [
        turn("assistant", "Welcome!"),
        turn("user", "Hi"),
        turn("user", "Are you there?"),
        turn("assistant", "Yes."),
        turn("assistant", ""),
    ]

    messages = build_messages("Help with fractions", history)

    assert messages == [
        {"role": "user", "content": "Hi\n\nAre you there?"},
        {"role": "assistant", "content": "Yes."},
        {"role": "user", "content": "User question: Help with fractions"},
    ]


# =============================================================================
# Student context
# =============================================================================


def test_extract_assignments_from_wrapped_payload():
    assert extract_assignments({"data": [{"id": 1}]}) == [{"id": 1}]
    assert extract_assignments({"payload": [{"id": 2}]}) == [{"id": 2}]
    assert extract_assignments({"error": True, "message": "boom"}) == []
    assert extract_assignments(None) == []


def test_summarize_assignments():
    assignments = [
        {"AssignmentId": 7, "Title": "Essay", "Subject": "English", "DueDate": "2024-05-03"},
        {"id": 8, "name": "Worksheet"},
    ]

    summary = summarize_assignments(assignments)

    assert summary["count"] == 2
    assert summary["preview"][0] == {
        "id": 7,
        "title": "Essay",
        "subject": "English",
        "status": None,
        "due_date": "2024-05-03",
        "score": None,
    }
    assert summary["preview"][1]["title"] == "Worksheet"
    assert [a["id"] for a in summary["upcoming"]] == [7]


def test_summarize_assignments_caps_preview():
    summary = summarize_assignments([{"id": i} for i in range(25)])

    assert summary["count"] == 25
    assert len(summary["preview"]) == 10


def test_latest_exam_data():
    exam_list = {"data": [{"id": 16}, {"id": 17}]}

    assert latest_exam_data(exam_list, {"17": {"score": 91}}) == {"score": 91}
    assert latest_exam_data(exam_list, {"16": {"score": 80}}) is None
    assert latest_exam_data({"error": True}, {"17": {}}) is None


def test_context_snippet_is_truncated():
    external = SimpleNamespace(
        profile={"name": "Lina" * 500},
        attendance_summary_monthly=None,
        attendance_details={"data": list(range(20))},
        assignments=None,
        exam_list=None,
        exam_data_by_exam_id=None,
        enrollment=None,
    )

    snippet = build_context_snippet(external, max_chars=100)

    assert snippet.startswith("Contextual student data (JSON):\n")
    assert len(snippet) == len("Contextual student data (JSON):\n") + 100
    assert build_context_snippet(None) == ""


# =============================================================================
# generate_reply
# =============================================================================


def test_generate_reply():
    client = MagicMock()
    client.messages.create.return_value = claude_message()

    result = generate_reply("1/2 + 1/4?", system_instruction="Be brief.", client=client)

    assert result == {
        "text": "Three quarters.",
        "model": settings.llm_model,
        "used_context": False,
        "tokens_used": 42,
    }
    request = client.messages.create.call_args.kwargs
    assert request["system"] == "Be brief."
    assert request["messages"] == [{"role": "user", "content": "User question: 1/2 + 1/4?"}]


def test_generate_reply_keeps_recent_history_only():
    client = MagicMock()
    client.messages.create.return_value = claude_message()
    history = [turn("user" if i % 2 == 0 else "assistant", f"m{i}") for i in range(20)]

    generate_reply("Next?", history=history, client=client)

    messages = client.messages.create.call_args.kwargs["messages"]
    assert messages[0]["content"] == f"m{20 - settings.llm_history_messages}"


def test_generate_reply_retries_transient_errors():
    client = MagicMock()
    client.messages.create.side_effect = [connection_error(), claude_message("Done.")]

    with patch.object(tutor_llm.time, "sleep") as mock_sleep:
        result = generate_reply("Hi", client=client)

    assert result["text"] == "Done."
    assert client.messages.create.call_count == 2
    mock_sleep.assert_called_once_with(1)


def test_generate_reply_gives_up_after_max_retries():
    client = MagicMock()
    client.messages.create.side_effect = connection_error()

    with patch.object(tutor_llm.time, "sleep") as mock_sleep:
        with pytest.raises(LLMError) as exc_info:
            generate_reply("Hi", client=client)

    assert client.messages.create.call_count == settings.llm_max_retries
    assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2]
    assert exc_info.value.hint == "Network issue while contacting the model provider."


def test_generate_reply_requires_api_key(monkeypatch):
    monkeypatch.setattr(settings, "anthropic_api_key", "")

    with pytest.raises(LLMError) as exc_info:
        generate_reply("Hi")

    assert exc_info.value.hint == "The API key may be missing or invalid."
