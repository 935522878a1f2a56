"""Celery tasks package."""

from worker.tasks.cleanup import prune_usage_retention, cleanup_expired_externals
from worker.tasks.external_sync import sync_student_external_task

__all__ = [
    "prune_usage_retention",
    "cleanup_expired_externals",
    "sync_student_external_task",
]
