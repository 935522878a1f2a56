"""Service layer for TutorChat."""

from app.services.usage_accounting import UsageAccountingEngine, UsageLedger, UsageStatus
from app.services.chat_titles import generate_chat_title

__all__ = [
    "UsageAccountingEngine",
    "UsageLedger",
    "UsageStatus",
    "generate_chat_title",
]
