"""
Celery application for the trainer's scheduled work.

The weekly review batch is registered with Celery Beat through
celerybeat_schedule.py; per-user tasks can also be enqueued directly.
"""
from celery import Celery
from core.config import settings
from celerybeat_schedule import beat_schedule

celery_app = Celery(
    "trainer",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # A batch makes one long model call per active user
    task_time_limit=60 * 60,
    task_soft_time_limit=55 * 60,
    # One review at a time per worker process; redelivered if the worker dies
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    beat_schedule=beat_schedule,
)

# Import tasks to register them
from . import weekly_review_tasks  # noqa: E402

__all__ = ["celery_app"]
