"""
Abstract base client for LLM inference.

Defines the interface every inference backend (Ollama today) implements,
plus the backend-independent ``classify`` operation built on top of it:
prompt -> generate -> parse -> report outcome.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol

import structlog

from sentiment_service.llm.exceptions import BackendError
from sentiment_service.llm.prompt_builder import PromptBuilder
from sentiment_service.llm.response_parser import ResponseParser
from sentiment_service.models.analysis import Classification
from sentiment_service.models.llm_models import LLMGenerationRequest, LLMGenerationResponse
from sentiment_service.monitoring.metrics import backend_call_latency_seconds
from sentiment_service.resilience.backoff import BackoffPolicy


logger = structlog.get_logger(__name__)


class OutcomeRecorder(Protocol):
    """Receives the outcome of every classify call (the circuit breaker)."""

    def record_success(self, latency_seconds: float) -> None: ...

    def record_failure(self, error: BaseException, latency_seconds: float) -> None: ...


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM inference clients.

    Responsibilities:
    - Send generation requests to the inference server
    - Apply per-call timeout and retry transient failures with backoff
    - Map transport failures onto BackendTimeout / BackendUnavailable

    Does NOT handle:
    - Admission control or circuit breaking (that's the coordinator's job)
    - Caching (that's the result store's job)
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        prompt_builder: PromptBuilder,
        response_parser: Optional[ResponseParser] = None,
        timeout: float = 10.0,
        max_retries: int = 2,
        backoff: Optional[BackoffPolicy] = None,
        outcome_recorder: Optional[OutcomeRecorder] = None,
        **kwargs: Any,
    ):
        """
        Initialize base client.

        Args:
            base_url: Base URL of the inference server (e.g., http://ollama:11434)
            model: Default model name
            prompt_builder: Renders classification prompts
            response_parser: Maps generated text to a Classification
            timeout: Per-call timeout in seconds
            max_retries: Retries after the first attempt for transient errors
            backoff: Delay schedule between retries
            outcome_recorder: Notified of each classify outcome (circuit breaker)
            **kwargs: Additional provider-specific config
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.prompt_builder = prompt_builder
        self.response_parser = response_parser or ResponseParser()
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff or BackoffPolicy()
        self.outcome_recorder = outcome_recorder
        self.extra_config = kwargs

    @abstractmethod
    async def generate(self, request: LLMGenerationRequest) -> LLMGenerationResponse:
        """
        Generate a completion, retrying transient failures.

        Raises:
            BackendTimeout: Every attempt timed out
            BackendUnavailable: Unreachable server or error status
            MalformedResponse: The server's envelope is not what the API promises
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Lightweight reachability check.

        Must not raise: returns False on any error.
        """

    @abstractmethod
    async def list_models(self) -> list[str]:
        """Names of the models available on the server."""

    async def classify(self, text: str) -> Classification:
        """
        Classify the sentiment of one text.

        The final outcome (after retries) is reported to the outcome
        recorder and the backend latency histogram.

        Args:
            text: Validated input text

        Returns:
            Classification with label, confidence and model identifier

        Raises:
            BackendTimeout, BackendUnavailable, MalformedResponse
        """
        request = self.prompt_builder.build_request(text)
        start = time.perf_counter()
        try:
            response = await self.generate(request)
            classification = self.response_parser.parse(
                response.content,
                model_id=response.model_version or request.model,
            )
        except BackendError as exc:
            elapsed = time.perf_counter() - start
            backend_call_latency_seconds.labels(outcome=exc.error_code).observe(elapsed)
            if self.outcome_recorder is not None:
                self.outcome_recorder.record_failure(exc, elapsed)
            logger.warning(
                "Classification failed",
                error_type=type(exc).__name__,
                error=exc.message,
                latency_ms=int(elapsed * 1000),
            )
            raise

        elapsed = time.perf_counter() - start
        backend_call_latency_seconds.labels(outcome="success").observe(elapsed)
        if self.outcome_recorder is not None:
            self.outcome_recorder.record_success(elapsed)
        logger.info(
            "Classification completed",
            label=classification.label.value,
            confidence=classification.confidence,
            model_id=classification.model_id,
            attempts=response.attempts,
            latency_ms=int(elapsed * 1000),
        )
        return classification

    async def close(self) -> None:
        """Release connections. Default implementation holds none."""
        logger.debug("Closing LLM client", client_class=self.__class__.__name__)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"base_url={self.base_url}, "
            f"model={self.model}, "
            f"timeout={self.timeout}s)"
        )
