"""
Request coordinator: the single entry point for sentiment analysis.

Flow for one request:

1. Validate the text (non-empty, at most MAX_TEXT_LENGTH characters)
2. Fingerprint the normalised text
3. Attach to an in-flight dispatch for the same fingerprint, if any
4. Serve a fresh stored result without touching the backend
5. Otherwise start one dispatch for the fingerprint:
   circuit pre-check -> backend slot -> breaker permission ->
   classify -> persist -> return

Every caller attached to a dispatch receives the same result or the same
error. The dispatch runs as its own task, so a caller that goes away does
not cancel the backend call and cannot leak a slot.
"""

import asyncio
from pathlib import Path
from typing import Any, Optional

import structlog

from sentiment_service.config import Settings
from sentiment_service.exceptions import InvalidInput, SentimentServiceError
from sentiment_service.llm.base_client import BaseLLMClient
from sentiment_service.llm.exceptions import BackendError
from sentiment_service.llm.ollama_client import OllamaClient
from sentiment_service.llm.prompt_builder import PromptBuilder
from sentiment_service.llm.response_parser import ResponseParser
from sentiment_service.models.analysis import AnalysisRequest, AnalysisResult
from sentiment_service.monitoring.metrics import (
    analysis_requests_total,
    sentiment_labels_total,
)
from sentiment_service.persistence.base import ResultStore
from sentiment_service.persistence.factory import build_result_store
from sentiment_service.resilience.admission import AdmissionController
from sentiment_service.resilience.backoff import BackoffPolicy
from sentiment_service.resilience.circuit_breaker import CircuitBreaker
from sentiment_service.service.fingerprint import compute_fingerprint, is_fingerprint

logger = structlog.get_logger(__name__)


class RequestCoordinator:
    """
    Coordinates validation, caching, coalescing, load shedding and
    persistence around the inference client.

    All collaborators are injected; nothing here is process-global, so
    tests build a fresh coordinator per case.
    """

    def __init__(
        self,
        client: BaseLLMClient,
        store: ResultStore,
        breaker: CircuitBreaker,
        admission: AdmissionController,
        max_text_length: int = 5000,
        freshness_ttl_seconds: float = 86400,
    ):
        """
        Args:
            client: Inference client (reports outcomes to the breaker)
            store: Result store
            breaker: Circuit breaker guarding the backend
            admission: Concurrency cap and bounded queue for backend calls
            max_text_length: Longest accepted text in characters
            freshness_ttl_seconds: Age below which a stored result is reused
        """
        if max_text_length < 1:
            raise ValueError("max_text_length must be >= 1")
        self.client = client
        self.store = store
        self.breaker = breaker
        self.admission = admission
        self.max_text_length = max_text_length
        self.freshness_ttl_seconds = freshness_ttl_seconds
        self._pending: dict[str, asyncio.Task[AnalysisResult]] = {}

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """
        Classify the sentiment of request.text.

        Raises:
            InvalidInput: Empty or over-long text (backend never called)
            ServiceOverloaded: Circuit open, probe taken, or queue full/timed out
            BackendTimeout, BackendUnavailable, MalformedResponse: Backend failure
            StorageError: The result could not be read or persisted
        """
        log = logger.bind(request_id=request.request_id)
        try:
            self._validate(request.text)
            fingerprint = compute_fingerprint(request.text)
            log = log.bind(fingerprint=fingerprint[:12])
            result, outcome = await self._resolve(fingerprint, request.text)
        except SentimentServiceError as exc:
            analysis_requests_total.labels(outcome=exc.error_code).inc()
            log.warning(
                "Analysis failed",
                error_code=exc.error_code,
                error=exc.message,
            )
            raise

        analysis_requests_total.labels(outcome=outcome).inc()
        log.info(
            "Analysis completed",
            outcome=outcome,
            label=result.label.value,
            confidence=result.confidence,
        )
        return result

    async def get_result(self, fingerprint: str) -> Optional[AnalysisResult]:
        """Stored result for a fingerprint regardless of freshness, or None."""
        fingerprint = fingerprint.lower()
        if not is_fingerprint(fingerprint):
            raise InvalidInput(
                "Fingerprint must be a 64-character hex SHA-256 digest",
                details={"fingerprint": fingerprint[:80]},
            )
        return await self.store.get(fingerprint)

    def stats(self) -> dict[str, Any]:
        return {
            "in_flight": self.admission.in_flight,
            "queued": self.admission.waiting,
            "pending_fingerprints": len(self._pending),
            "circuit_state": self.breaker.state.value,
        }

    async def close(self) -> None:
        """Close the client and the store."""
        await self.client.close()
        await self.store.close()

    # === Internals ===

    def _validate(self, text: str) -> None:
        if not text or not text.strip():
            raise InvalidInput("Text must not be empty")
        if len(text) > self.max_text_length:
            raise InvalidInput(
                f"Text exceeds maximum length of {self.max_text_length} characters",
                details={"length": len(text), "max_length": self.max_text_length},
            )

    async def _resolve(self, fingerprint: str, text: str) -> tuple[AnalysisResult, str]:
        task = self._pending.get(fingerprint)
        if task is not None:
            return await asyncio.shield(task), "coalesced"

        cached = await self.store.get(fingerprint)
        if cached is not None and cached.is_fresh(self.freshness_ttl_seconds):
            return cached, "cached"

        # The store read yielded control; another caller may have started a dispatch
        task = self._pending.get(fingerprint)
        if task is not None:
            return await asyncio.shield(task), "coalesced"

        task = asyncio.create_task(
            self._dispatch(fingerprint, text),
            name=f"sentiment-dispatch-{fingerprint[:12]}",
        )
        self._pending[fingerprint] = task
        task.add_done_callback(_consume_exception)
        logger.debug(
            "Dispatching to backend",
            fingerprint=fingerprint[:12],
            stale=cached is not None,
        )
        return await asyncio.shield(task), "success"

    async def _dispatch(self, fingerprint: str, text: str) -> AnalysisResult:
        try:
            self.breaker.reject_if_open()

            async with self.admission.slot():
                holds_probe = self.breaker.check()
                try:
                    classification = await self.client.classify(text)
                except BackendError:
                    raise
                except BaseException:
                    # No outcome was recorded; only the probe holder gives its permit back
                    if holds_probe:
                        self.breaker.release_probe()
                    raise

            result = AnalysisResult.from_classification(fingerprint, classification)
            await self.store.upsert(fingerprint, result)
            sentiment_labels_total.labels(label=result.label.value).inc()
            return result
        finally:
            if self._pending.get(fingerprint) is asyncio.current_task():
                del self._pending[fingerprint]


def _consume_exception(task: asyncio.Task) -> None:
    # Every waiter may have gone away; mark the error as retrieved
    if not task.cancelled():
        task.exception()


def build_coordinator(settings: Settings) -> RequestCoordinator:
    """Wire a coordinator and its collaborators from one Settings object."""
    breaker = CircuitBreaker.from_settings(settings)
    prompt_builder = PromptBuilder(
        model=settings.OLLAMA_MODEL,
        templates_dir=Path(settings.PROMPT_TEMPLATES_DIR) if settings.PROMPT_TEMPLATES_DIR else None,
        temperature=settings.LLM_TEMPERATURE,
        max_tokens=settings.LLM_MAX_TOKENS,
    )
    client = OllamaClient(
        base_url=settings.OLLAMA_BASE_URL,
        model=settings.OLLAMA_MODEL,
        prompt_builder=prompt_builder,
        response_parser=ResponseParser(default_confidence=settings.FREEFORM_DEFAULT_CONFIDENCE),
        timeout=settings.OLLAMA_TIMEOUT,
        max_retries=settings.BACKEND_MAX_RETRIES,
        backoff=BackoffPolicy(
            base=settings.BACKOFF_BASE_SECONDS,
            max_delay=settings.BACKOFF_MAX_SECONDS,
            jitter=settings.BACKOFF_JITTER_SECONDS,
        ),
        outcome_recorder=breaker,
    )
    admission = AdmissionController(
        max_concurrent=settings.MAX_CONCURRENT_BACKEND_CALLS,
        max_queue_depth=settings.MAX_QUEUE_DEPTH,
        queue_timeout=settings.QUEUE_TIMEOUT_SECONDS,
    )
    return RequestCoordinator(
        client=client,
        store=build_result_store(settings),
        breaker=breaker,
        admission=admission,
        max_text_length=settings.MAX_TEXT_LENGTH,
        freshness_ttl_seconds=settings.RESULT_FRESHNESS_TTL_SECONDS,
    )
