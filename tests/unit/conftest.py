"""Unit test fixtures (fakes and stubs).

Provides a scripted inference client and fresh resilience components so
unit tests never touch the network.
"""

import asyncio
from typing import Optional, Union
from unittest.mock import AsyncMock

import pytest

from sentiment_service.llm.base_client import BaseLLMClient
from sentiment_service.llm.prompt_builder import PromptBuilder
from sentiment_service.models.llm_models import LLMGenerationRequest, LLMGenerationResponse
from sentiment_service.persistence.memory import InMemoryResultStore
from sentiment_service.resilience.admission import AdmissionController
from sentiment_service.resilience.circuit_breaker import CircuitBreaker
from sentiment_service.service.coordinator import RequestCoordinator

POSITIVE_JSON = '{"label": "POSITIVE", "confidence": 0.92}'


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLLMClient(BaseLLMClient):
    """
    Scripted backend.

    Each generate() call consumes the next scripted item: a string is
    returned as generated content, an exception is raised. When the script
    is empty the default content is returned. Set ``gate`` to an
    asyncio.Event to hold calls until the test releases them.
    """

    def __init__(
        self,
        script: Optional[list[Union[str, BaseException]]] = None,
        default_content: str = POSITIVE_JSON,
        **kwargs,
    ):
        super().__init__(
            "http://fake-ollama:11434",
            model="fake-model",
            prompt_builder=PromptBuilder(model="fake-model"),
            **kwargs,
        )
        self.script = list(script or [])
        self.default_content = default_content
        self.calls = 0
        self.prompts: list[str] = []
        self.gate: Optional[asyncio.Event] = None
        self.started = asyncio.Event()

    async def generate(self, request: LLMGenerationRequest) -> LLMGenerationResponse:
        self.calls += 1
        self.prompts.append(request.prompt)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        item = self.script.pop(0) if self.script else self.default_content
        if isinstance(item, BaseException):
            raise item
        return LLMGenerationResponse(
            content=item,
            model_version=self.model,
            finish_reason="stop",
            latency_ms=1,
        )

    async def health_check(self) -> bool:
        return True

    async def list_models(self) -> list[str]:
        return [self.model]


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def breaker(fake_clock) -> CircuitBreaker:
    """Breaker that opens after 3 failures out of at least 3 calls."""
    return CircuitBreaker(
        failure_rate_threshold=0.5,
        minimum_calls=3,
        window_seconds=60.0,
        cooldown_seconds=30.0,
        name="test",
        clock=fake_clock,
    )


@pytest.fixture
def fake_client(breaker) -> FakeLLMClient:
    return FakeLLMClient(outcome_recorder=breaker, max_retries=0)


@pytest.fixture
def memory_store() -> InMemoryResultStore:
    return InMemoryResultStore()


@pytest.fixture
def coordinator(fake_client, memory_store, breaker) -> RequestCoordinator:
    return RequestCoordinator(
        client=fake_client,
        store=memory_store,
        breaker=breaker,
        admission=AdmissionController(max_concurrent=2, max_queue_depth=4, queue_timeout=5.0),
        max_text_length=200,
        freshness_ttl_seconds=3600,
    )


@pytest.fixture
def mock_async_redis():
    """Mock AsyncRedis client for unit tests (async)."""
    mock = AsyncMock()
    mock.set = AsyncMock(return_value=True)
    mock.get = AsyncMock(return_value=None)
    mock.ping = AsyncMock(return_value=True)
    return mock
