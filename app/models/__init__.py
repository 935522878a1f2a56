"""
TutorChat Database Models

All SQLAlchemy models are imported here for easy access.
"""

from app.models.student import Student, Chat, ChatMessage, MESSAGE_ROLES
from app.models.student_external import StudentExternal

__all__ = [
    "Student",
    "Chat",
    "ChatMessage",
    "StudentExternal",
    "MESSAGE_ROLES",
]
