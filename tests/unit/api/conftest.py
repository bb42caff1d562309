"""Fixtures for API tests: an app wired to the scripted coordinator."""

import pytest
from fastapi.testclient import TestClient

from sentiment_service.main import create_app


@pytest.fixture
def app(test_settings, coordinator):
    return create_app(app_settings=test_settings, coordinator=coordinator)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
