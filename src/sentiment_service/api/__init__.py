"""
FastAPI API routes and endpoints.

- routes_sync.py: POST /analyze, GET /analyze/{fingerprint}, GET /health, GET /version
- routes_async.py: POST /analyze/batch, GET /analyze/task/{id} (Celery)
- dependencies.py: Access to the components held on app.state
- models.py: API-specific request/response models
- error_handlers.py: Exception handlers for structured error responses
"""

from sentiment_service.api import dependencies, error_handlers, models
from sentiment_service.api.routes_async import router as async_router
from sentiment_service.api.routes_sync import router as sync_router

__all__ = [
    "sync_router",
    "async_router",
    "dependencies",
    "error_handlers",
    "models",
]
