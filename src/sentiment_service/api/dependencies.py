"""
FastAPI dependency injection.

Components are built once at startup (see main.py) and held on
``app.state``; dependencies only hand them out. Tests either pass their
own coordinator to ``create_app`` or use ``app.dependency_overrides``.
"""

from fastapi import Request

from sentiment_service.config import Settings
from sentiment_service.service.coordinator import RequestCoordinator


def get_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_coordinator(request: Request) -> RequestCoordinator:
    """
    Coordinator shared by all requests of this application.

    Holds the inference client, result store, circuit breaker and
    admission controller.
    """
    return request.app.state.coordinator
