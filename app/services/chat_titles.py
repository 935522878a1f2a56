"""Short chat titles derived from a student's first message."""

import re
from typing import List, Optional

DEFAULT_TITLE = "New Chat"
MAX_TITLE_WORDS = 6

LEAD_IN_PHRASES = [
    "please", "tell me", "i want", "i need", "can you", "could you",
    "would you", "how do i", "what is", "what are", "explain", "help me",
    "i would like", "i am looking for", "can you help", "i need help",
    "i want to know", "i want to learn", "i want to understand",
    "show me", "give me", "i need to know", "i need help with",
    "i am trying to", "i am working on", "i am studying",
    "i am learning", "i am confused about", "i don't understand",
    "i have a question about", "i have a problem with",
    "i am having trouble with", "i am stuck on",
]

IMPORTANT_TERMS = [
    "algorithm", "programming", "code", "function", "variable", "class", "method",
    "database", "sql", "api", "framework", "library", "tool", "software",
    "machine learning", "ai", "artificial intelligence", "neural network",
    "react", "javascript", "python", "java", "html", "css", "node",
    "deployment", "server", "cloud", "aws", "azure", "docker", "kubernetes",
    "math", "mathematics", "physics", "chemistry", "biology", "science",
    "law", "theory", "principle", "concept", "approach",
    "design", "architecture", "pattern", "structure", "system",
    "analysis", "optimization", "performance", "security", "testing",
]

COMMON_WORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "is", "are", "was", "were", "be", "been", "being", "have", "has", "had", "do", "does", "did",
    "will", "would", "could", "should", "may", "might", "can", "this", "that", "these", "those",
    "i", "you", "he", "she", "it", "we", "they", "me", "him", "her", "us", "them",
}

QUESTION_WORDS = ("what", "how", "why", "when", "where", "which", "who")
ACTION_WORDS = {"learn", "understand", "build", "create", "develop", "implement", "solve"}
CONTEXT_WORDS = {"tutorial", "guide", "steps", "process", "method", "approach"}


def _capitalize(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" ") if word)


def _is_question(message: str) -> bool:
    lowered = message.lower()
    return (
        lowered.startswith(QUESTION_WORDS)
        or "?" in message
        or lowered.startswith(("explain", "tell me"))
    )


def _key_terms(words: List[str]) -> List[str]:
    terms = [w for w in words if any(t in w or w in t for t in IMPORTANT_TERMS)]
    if not terms:
        terms = [w for w in words if len(w) > 4 and w not in COMMON_WORDS]
    return terms or words[:3]


def generate_chat_title(message: Optional[str]) -> str:
    """Turn a first message into a title of at most six words."""
    if not message or not isinstance(message, str):
        return DEFAULT_TITLE

    text = message.strip().lower()
    for phrase in LEAD_IN_PHRASES:
        if text.startswith(phrase):
            text = text[len(phrase):].strip()
            break
    text = re.sub(r"[?!.]$", "", text).strip()

    words = text.split()
    if len(words) <= 2:
        return _capitalize(" ".join(words)) or DEFAULT_TITLE

    terms = _key_terms(words)
    if _is_question(message):
        title = _capitalize(terms[0])
        for word in words:
            if word in ACTION_WORDS or word in CONTEXT_WORDS:
                title = f"{_capitalize(terms[0])} {_capitalize(word)}"
                break
    else:
        title = " ".join(_capitalize(t) for t in terms[:3])

    return " ".join(title.split(" ")[:MAX_TITLE_WORDS]) or DEFAULT_TITLE
