"""
Celery application configuration for async batch analysis.

This module initializes the Celery app with Redis broker and result backend.
Tasks are defined in analysis_tasks.py.
"""

from celery import Celery

from sentiment_service.config import settings

celery_app = Celery(
    "sentiment_service",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    # Task execution
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT,  # Hard limit (kills task)
    task_soft_time_limit=max(1, settings.CELERY_TASK_TIME_LIMIT - 30),  # Soft limit (raises exception)

    # Worker settings
    worker_concurrency=settings.CELERY_WORKER_CONCURRENCY,
    worker_prefetch_multiplier=1,  # Backend calls are slow; don't hoard tasks
    worker_max_tasks_per_child=500,

    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Result backend
    result_expires=3600,
    result_extended=True,

    # Task tracking
    task_track_started=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)

celery_app.autodiscover_tasks(["sentiment_service.tasks"], related_name="analysis_tasks")
