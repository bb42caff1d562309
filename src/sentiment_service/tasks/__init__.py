"""
Celery tasks for asynchronous batch analysis.

- celery_app.py: Celery application configuration (broker, backend, etc.)
- analysis_tasks.py: Task definitions (analyze_text)
"""

from sentiment_service.tasks.analysis_tasks import analyze_text_task
from sentiment_service.tasks.celery_app import celery_app

__all__ = [
    "celery_app",
    "analyze_text_task",
]
