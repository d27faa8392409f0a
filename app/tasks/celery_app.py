"""
Celery application configuration.

Includes:
- Celery app setup with Redis broker
- Task configuration
- Beat schedule for periodic tasks
"""
from celery import Celery
from celery.schedules import crontab

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "dmed",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.tasks",
        "app.tasks.notification_tasks",
    ],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.timezone,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    worker_prefetch_multiplier=1,
    result_expires=3600,  # 1 hour
)

# Celery Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "check-letter-deadlines-daily": {
        "task": "app.tasks.notification_tasks.check_letter_deadlines",
        "schedule": crontab(hour=9, minute=0),  # Every day at 9 AM
        "options": {"queue": "default"},
    },
    "update-request-sla": {
        "task": "app.tasks.notification_tasks.update_request_sla",
        "schedule": 15 * 60.0,  # Every 15 minutes
        "options": {"queue": "default"},
    },
    "send-daily-digest": {
        "task": "app.tasks.notification_tasks.send_digest",
        "schedule": crontab(hour=8, minute=0),
        "args": ("DAILY",),
        "options": {"queue": "default"},
    },
    "send-weekly-digest": {
        "task": "app.tasks.notification_tasks.send_digest",
        "schedule": crontab(hour=8, minute=0, day_of_week="monday"),  # Every Monday at 8 AM
        "args": ("WEEKLY",),
        "options": {"queue": "default"},
    },
}

# Optional: Set default queue
celery_app.conf.task_default_queue = "default"
