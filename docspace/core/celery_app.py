"""
Celery application configuration for periodic maintenance tasks.
"""
from celery import Celery

from docspace.core.config import settings

# Create Celery instance
celery_app = Celery(
    "docspace-workspaces",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "docspace.tasks.maintenance",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,
    task_soft_time_limit=8 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    result_expires=3600,
    beat_schedule={
        "expire-stale-invitations": {
            "task": "docspace.tasks.maintenance.expire_stale_invitations",
            "schedule": 3600.0,  # hourly
        },
        "prune-webhook-deliveries": {
            "task": "docspace.tasks.maintenance.prune_webhook_deliveries",
            "schedule": 86400.0,  # daily
        },
    },
)

celery_app.conf.task_routes = {
    "docspace.tasks.maintenance.*": {"queue": "maintenance"},
}
