# Celery tasks
from app.tasks.celery_app import celery_app
from app.tasks.notification_tasks import (
    check_letter_deadlines,
    send_digest,
    update_request_sla,
)

__all__ = [
    "celery_app",
    "check_letter_deadlines",
    "update_request_sla",
    "send_digest",
]
