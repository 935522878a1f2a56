import pytest

from app.services.chat_titles import generate_chat_title


@pytest.mark.parametrize(
    "message,title",
    [
        ("What is recursion?", "Recursion"),
        ("Please help", "Help"),
        ("How do I learn python?", "Learn Python"),
        ("Why won't my python tests build?", "Python Build"),
        ("Docker deployment with kubernetes", "Docker Deployment Kubernetes"),
        ("Photosynthesis converts sunlight into glucose", "Photosynthesis Converts Sunlight"),
    ],
)
def test_generate_chat_title(message, title):
    assert generate_chat_title(message) == title


@pytest.mark.parametrize("message", [None, "", "   ?", 42])
def test_generate_chat_title_fallback(message):
    assert generate_chat_title(message) == "New Chat"
