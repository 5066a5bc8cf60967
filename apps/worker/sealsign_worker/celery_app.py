"""Celery application configuration."""

from celery import Celery

from sealsign_worker.settings import get_settings

settings = get_settings()

celery_app = Celery(
    "sealsign_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["sealsign_worker.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # Emails are acknowledged only once sent; a lost worker hands them back
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
    result_expires=24 * 60 * 60,
)
