"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from sentiment_service.config import Settings
from sentiment_service.models.analysis import AnalysisResult
from sentiment_service.models.enums import SentimentLabel
from sentiment_service.service.fingerprint import compute_fingerprint


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Override specific settings in individual tests with model_copy:
        test_settings.model_copy(update={"MAX_QUEUE_DEPTH": 0})
    """
    return Settings(
        # === Application ===
        APP_NAME="Sentiment Analysis Service (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Ollama ===
        OLLAMA_BASE_URL="http://localhost:11434",
        OLLAMA_MODEL="llama3.2:3b",
        OLLAMA_TIMEOUT=5.0,
        BACKEND_MAX_RETRIES=2,
        BACKOFF_BASE_SECONDS=0.0,
        BACKOFF_JITTER_SECONDS=0.0,

        # === Coordinator ===
        MAX_TEXT_LENGTH=200,
        MAX_CONCURRENT_BACKEND_CALLS=2,
        MAX_QUEUE_DEPTH=4,
        QUEUE_TIMEOUT_SECONDS=5.0,

        # === Storage ===
        RESULT_STORE_BACKEND="memory",
        DATABASE_URL="sqlite+aiosqlite:///:memory:",  # In-memory for tests
        REDIS_URL="redis://localhost:6379/0",
        REDIS_MAX_CONNECTIONS=10,

        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


@pytest.fixture
def make_result():
    """Factory for AnalysisResult records keyed by the fingerprint of a text."""

    def _make(
        text: str = "I love this product",
        label: SentimentLabel = SentimentLabel.POSITIVE,
        confidence: float = 0.9,
        model_id: str = "llama3.2:3b",
        age_seconds: float = 0.0,
    ) -> AnalysisResult:
        return AnalysisResult(
            fingerprint=compute_fingerprint(text),
            label=label,
            confidence=confidence,
            model_id=model_id,
            created_at=datetime.now(timezone.utc) - timedelta(seconds=age_seconds),
        )

    return _make
