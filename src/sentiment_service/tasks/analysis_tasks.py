"""
Celery tasks for asynchronous sentiment analysis.

Tasks accept and return JSON-serializable values. Each worker process owns
one event loop and one coordinator; the coordinator's asyncio primitives
and HTTP connection pool are bound to that loop, so it is reused across
tasks instead of calling asyncio.run() per task.
"""

import asyncio
from typing import Any, Coroutine, Optional, TypeVar

import structlog
from celery import Task

from sentiment_service.config import settings
from sentiment_service.exceptions import ServiceOverloaded
from sentiment_service.llm.exceptions import BackendError
from sentiment_service.models.analysis import AnalysisRequest
from sentiment_service.service.coordinator import RequestCoordinator, build_coordinator
from sentiment_service.tasks.celery_app import celery_app

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_COUNTDOWN = 30


class AnalysisTask(Task):
    """
    Base task class with resource initialization.

    Builds heavy resources once per worker process and reuses them across
    task invocations (the worker-side counterpart of app.state in FastAPI).
    """

    _loop: Optional[asyncio.AbstractEventLoop] = None
    _coordinator: Optional[RequestCoordinator] = None

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """Get or create the worker's event loop."""
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
        return self._loop

    @property
    def coordinator(self) -> RequestCoordinator:
        """Get or initialize the coordinator (singleton per worker)."""
        if self._coordinator is None:
            coordinator = build_coordinator(settings)
            self.run_async(coordinator.store.create_schema())
            self._coordinator = coordinator
        return self._coordinator

    def run_async(self, coro: Coroutine[Any, Any, T]) -> T:
        return self.loop.run_until_complete(coro)


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, ServiceOverloaded):
        return True
    return isinstance(exc, BackendError) and exc.retryable


@celery_app.task(
    bind=True,
    base=AnalysisTask,
    name="analyze_text",
    max_retries=3,
)
def analyze_text_task(self: AnalysisTask, text: str, request_id: Optional[str] = None) -> dict:
    """
    Analyze one text.

    Args:
        text: Text to classify
        request_id: Optional correlation id

    Returns:
        AnalysisResult as dict, plus request_id

    Raises:
        InvalidInput, MalformedResponse, StorageError: Not retried
        ServiceOverloaded, BackendTimeout, BackendUnavailable: Retried by
            Celery after a countdown, then surfaced
    """
    request_id = request_id or self.request.id
    log = logger.bind(task_id=self.request.id, request_id=request_id)
    log.info("Celery task started", text_length=len(text))

    try:
        result = self.run_async(
            self.coordinator.analyze(AnalysisRequest(text=text, request_id=request_id))
        )
    except Exception as exc:
        if not _is_transient(exc):
            log.error(
                "Celery task failed",
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise

        countdown = DEFAULT_RETRY_COUNTDOWN
        if isinstance(exc, ServiceOverloaded) and exc.retry_after:
            countdown = max(1, int(exc.retry_after) + 1)
        log.warning(
            "Celery task will retry",
            error_type=type(exc).__name__,
            retries=self.request.retries,
            countdown=countdown,
        )
        raise self.retry(exc=exc, countdown=countdown)

    log.info(
        "Celery task completed",
        fingerprint=result.fingerprint[:12],
        label=result.label.value,
    )
    payload = result.model_dump(mode="json")
    payload["request_id"] = request_id
    return payload
