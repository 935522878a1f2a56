"""
Celery application configuration.

Defines the Celery app instance and beat schedule for periodic tasks.
"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings

# Create Celery app
celery_app = Celery(
    "tutorchat",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "worker.tasks.cleanup",
        "worker.tasks.external_sync",
    ],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,  # Acknowledge after task completes
    task_reject_on_worker_lost=True,  # Reject task if worker dies
    worker_prefetch_multiplier=1,  # One task at a time per worker

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    task_routes={
        "worker.tasks.external_sync.*": {"queue": "sync"},
        "worker.tasks.cleanup.*": {"queue": "maintenance"},
    },

    # Be gentle with the school API
    task_annotations={
        "worker.tasks.external_sync.sync_student_external_task": {"rate_limit": "30/m"},
    },
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    # Usage/chat retention - daily at 3 AM UTC
    "prune-usage-retention": {
        "task": "worker.tasks.cleanup.prune_usage_retention",
        "schedule": crontab(minute=0, hour=3),
        "options": {"queue": "maintenance"},
    },

    # Expired school data snapshots - every 15 minutes
    "cleanup-expired-externals": {
        "task": "worker.tasks.cleanup.cleanup_expired_externals",
        "schedule": crontab(minute="*/15"),
        "options": {"queue": "maintenance"},
    },
}
