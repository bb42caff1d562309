"""Integration test fixtures (service checks and prerequisites).

Provides fixtures for checking if external services are available.
Integration tests are skipped if required services are not running.
"""

import os

import httpx
import pytest
from redis import Redis

OLLAMA_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.2:3b")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")


@pytest.fixture(scope="session")
def check_ollama():
    """Check that Ollama is reachable and serves OLLAMA_MODEL.

    Skips tests otherwise.
    """
    try:
        response = httpx.get(f"{OLLAMA_URL}/api/tags", timeout=5)
    except Exception as e:
        pytest.skip(f"Ollama not available: {e}")
    if response.status_code != 200:
        pytest.skip("Ollama not available (non-200 status)")
    names = {m.get("name") for m in response.json().get("models", [])}
    if OLLAMA_MODEL not in names:
        pytest.skip(f"Model {OLLAMA_MODEL} not pulled")


@pytest.fixture(scope="session")
def check_redis():
    """Check if Redis is available at REDIS_URL.

    Skips tests if Redis is not reachable.
    """
    try:
        client = Redis.from_url(REDIS_URL)
        client.ping()
        client.close()
    except Exception as e:
        pytest.skip(f"Redis not available: {e}")


@pytest.fixture
def integration_settings(test_settings, check_ollama):
    return test_settings.model_copy(
        update={
            "OLLAMA_BASE_URL": OLLAMA_URL,
            "OLLAMA_MODEL": OLLAMA_MODEL,
            "OLLAMA_TIMEOUT": 60.0,
        }
    )


@pytest.fixture(scope="session")
def ollama_url() -> str:
    return OLLAMA_URL


@pytest.fixture(scope="session")
def ollama_model() -> str:
    return OLLAMA_MODEL


@pytest.fixture(scope="session")
def redis_url() -> str:
    return REDIS_URL
