"""
Ollama client implementation for sentiment classification.

Communicates with the Ollama API using httpx AsyncClient:
- POST /api/generate with a JSON Schema ``format`` constraint
- GET /api/tags for health checks and model listing

Timeouts, network errors, HTTP 429 and 5xx are retried with exponential
backoff and jitter; other failures surface immediately.
"""

import asyncio
import json
import time
from typing import Any, Optional

import httpx
import structlog

from sentiment_service.llm.base_client import BaseLLMClient
from sentiment_service.llm.prompt_builder import PromptBuilder
from sentiment_service.llm.exceptions import (
    BackendError,
    BackendTimeout,
    BackendUnavailable,
    MalformedResponse,
)
from sentiment_service.models.llm_models import LLMGenerationRequest, LLMGenerationResponse
from sentiment_service.monitoring.metrics import backend_retries_total


logger = structlog.get_logger(__name__)


class OllamaClient(BaseLLMClient):
    """
    Ollama-specific LLM client using a persistent httpx.AsyncClient.

    Request payload:
    {
        "model": "llama3.2:3b",
        "prompt": "...",
        "stream": false,
        "format": <JSON Schema>,
        "options": {"temperature": 0.0, "num_predict": 128, "seed": 42}
    }

    Response:
    {
        "model": "llama3.2:3b",
        "response": "{\"label\": \"POSITIVE\", \"confidence\": 0.93}",
        "done": true,
        "prompt_eval_count": 120,
        "eval_count": 14
    }
    """

    def __init__(
        self,
        base_url: str = "http://ollama:11434",
        model: str = "llama3.2:3b",
        prompt_builder: Optional[PromptBuilder] = None,
        connection_limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs: Any,
    ):
        """
        Initialize Ollama client.

        Args:
            base_url: Ollama server URL
            model: Default model name
            prompt_builder: Prompt builder (a default one for model is created if omitted)
            connection_limits: httpx connection pool limits
            transport: Custom httpx transport (tests use httpx.MockTransport)
            **kwargs: Passed to BaseLLMClient (timeout, max_retries, backoff, ...)
        """
        super().__init__(
            base_url,
            model=model,
            prompt_builder=prompt_builder or PromptBuilder(model=model),
            **kwargs,
        )

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=20,
                keepalive_expiry=30.0
            )

        self._client: Optional[httpx.AsyncClient] = None
        self._connection_limits = connection_limits
        self._transport = transport

        logger.info(
            "Ollama client initialized",
            base_url=self.base_url,
            model=self.model,
            timeout=self.timeout,
            max_retries=self.max_retries,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                transport=self._transport,
                follow_redirects=True
            )
            logger.debug("Created new httpx AsyncClient")
        return self._client

    def _build_payload(self, request: LLMGenerationRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model,
            "prompt": request.prompt,
            "stream": False,
            "format": request.format_schema or "json",
            "options": {
                "temperature": request.temperature,
                "num_predict": request.max_tokens,
            },
        }
        if request.seed is not None:
            payload["options"]["seed"] = request.seed
        return payload

    async def generate(self, request: LLMGenerationRequest) -> LLMGenerationResponse:
        """Generate a completion using POST /api/generate."""
        payload = self._build_payload(request)
        max_attempts = self.max_retries + 1

        logger.debug(
            "Sending generation request to Ollama",
            model=request.model,
            prompt_length=len(request.prompt),
        )

        for attempt in range(1, max_attempts + 1):
            attempt_start = time.perf_counter()
            try:
                client = await self._get_client()
                response = await client.post("/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()

            except httpx.TimeoutException as e:
                error: BackendError = BackendTimeout(
                    f"Backend call timed out after {self.timeout}s",
                    details={"attempt": attempt, "timeout": self.timeout},
                )
                logger.warning("Ollama request timeout", attempt=attempt, error=str(e))

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                retryable = status_code == 429 or status_code >= 500
                error = BackendUnavailable(
                    f"Ollama returned HTTP {status_code}",
                    details={
                        "attempt": attempt,
                        "status": status_code,
                        "error": e.response.text[:500],
                        "model": request.model,
                    },
                    retryable=retryable,
                )
                logger.warning(
                    "Ollama HTTP error",
                    attempt=attempt,
                    status_code=status_code,
                    retryable=retryable,
                )
                if not retryable:
                    raise error from e

            except httpx.TransportError as e:
                error = BackendUnavailable(
                    f"Network error: {e}",
                    details={"attempt": attempt, "error_type": type(e).__name__},
                    retryable=True,
                )
                logger.warning("Ollama network error", attempt=attempt, error=str(e))

            except httpx.HTTPError as e:
                # Redirect loops and undecodable content encodings
                raise BackendUnavailable(
                    f"Ollama request failed: {e}",
                    details={"attempt": attempt, "error_type": type(e).__name__},
                    retryable=False,
                ) from e

            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise MalformedResponse(
                    "Invalid JSON envelope from Ollama",
                    raw_content=response.content[:500].decode("utf-8", errors="replace"),
                    details={"parse_error": str(e), "error_type": type(e).__name__},
                ) from e

            else:
                return self._to_generation_response(
                    data, request, attempt, time.perf_counter() - attempt_start
                )

            if attempt >= max_attempts:
                raise error

            delay = self.backoff.delay(attempt)
            backend_retries_total.labels(reason=error.error_code).inc()
            logger.info(
                "Retrying backend call",
                attempt=attempt,
                next_attempt=attempt + 1,
                backoff_seconds=round(delay, 3),
                reason=error.error_code,
            )
            await asyncio.sleep(delay)

        # max_attempts >= 1, the loop always returns or raises
        raise BackendUnavailable("Generation failed after all retries")

    def _to_generation_response(
        self,
        data: Any,
        request: LLMGenerationRequest,
        attempt: int,
        elapsed: float,
    ) -> LLMGenerationResponse:
        if not isinstance(data, dict):
            raise MalformedResponse(
                f"Ollama response is not a JSON object (got {type(data).__name__})",
                raw_content=str(data),
            )

        content = data.get("response")
        if not isinstance(content, str) or not content.strip():
            raise MalformedResponse(
                "Empty response from Ollama",
                raw_content=json.dumps(data)[:500],
            )

        return LLMGenerationResponse(
            content=content,
            model_version=data.get("model") or request.model,
            finish_reason="stop" if data.get("done", True) else "incomplete",
            prompt_tokens=data.get("prompt_eval_count"),
            completion_tokens=data.get("eval_count"),
            latency_ms=int(elapsed * 1000),
            attempts=attempt,
            raw_metadata={
                "total_duration": data.get("total_duration"),
                "load_duration": data.get("load_duration"),
                "eval_duration": data.get("eval_duration"),
            },
        )

    async def health_check(self) -> bool:
        """Check Ollama server health via GET /api/tags."""
        try:
            client = await self._get_client()
            response = await client.get("/api/tags", timeout=5.0)
            response.raise_for_status()
            return True
        except Exception as e:
            logger.warning("Ollama health check failed", error=str(e))
            return False

    async def list_models(self) -> list[str]:
        """List model names via GET /api/tags."""
        try:
            client = await self._get_client()
            response = await client.get("/api/tags", timeout=10.0)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise BackendTimeout(f"Listing models timed out: {e}") from e
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            raise BackendUnavailable(
                f"Failed to list models: {e}",
                details={"error_type": type(e).__name__},
            ) from e

        models = [m["name"] for m in data.get("models", []) if "name" in m]
        logger.debug("Listed available models", count=len(models))
        return models

    async def close(self) -> None:
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed Ollama client connection")

    async def __aenter__(self) -> "OllamaClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
