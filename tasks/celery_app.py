"""
tasks/celery_app.py
Celery application instance shared across all task modules.

Workers are started with:
    celery -A tasks.celery_app worker --loglevel=info

Beat scheduler (periodic tasks):
    celery -A tasks.celery_app beat --loglevel=info
"""

from celery import Celery
from celery.schedules import crontab

from config.settings import settings

celery_app = Celery(
    "naodludzie_functions",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "tasks.booking_tasks",
    ],
)

# ── Configuration ─────────────────────────────────────────────────────────────

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Europe/Warsaw",
    enable_utc=True,

    task_acks_late=True,
    task_reject_on_worker_lost=True,
    result_expires=3600,
    worker_prefetch_multiplier=1,
)

# ── Periodic Tasks (Beat Schedule) ────────────────────────────────────────────

celery_app.conf.beat_schedule = {
    # Reject booking requests the host left unanswered past the expiry window
    "expire-stale-booking-requests": {
        "task": "tasks.booking_tasks.expire_stale_booking_requests",
        "schedule": crontab(minute=0),  # top of every hour
    },
    # Move lapsed listings back to pending
    "expire-stale-cabins": {
        "task": "tasks.booking_tasks.expire_stale_cabins",
        "schedule": crontab(hour=3, minute=0),
    },
}
