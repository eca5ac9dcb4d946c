from celery import Celery
from .config import settings


celery_app = Celery(
    "notifications",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND or None,
)

celery_app.conf.update(
    task_acks_late=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    worker_prefetch_multiplier=1,
    include=["smartbills.notifications.tasks"],
)

# Celery Beat schedule for periodic dispatch (used instead of the in-process scheduler)
celery_app.conf.beat_schedule = {
    "dispatch-due-notifications": {
        "task": "notifications.dispatch_due",
        "schedule": settings.SCAN_INTERVAL_SECONDS,
    },
}
