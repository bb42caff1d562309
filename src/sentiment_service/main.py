"""
FastAPI application entry point for the sentiment analysis service.
"""

from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from sentiment_service.api.error_handlers import EXCEPTION_HANDLERS
from sentiment_service.api.middleware import RequestTracingMiddleware
from sentiment_service.api.routes_async import router as async_router
from sentiment_service.api.routes_sync import router as sync_router
from sentiment_service.config import Settings, settings
from sentiment_service.exceptions import StorageError
from sentiment_service.logging_config import configure_logging
from sentiment_service.service.coordinator import RequestCoordinator, build_coordinator

# Configure structured logging before the app is built
configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT, version=settings.APP_VERSION)
logger = structlog.get_logger(__name__)


def create_app(
    app_settings: Optional[Settings] = None,
    coordinator: Optional[RequestCoordinator] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings to run with (module settings if omitted)
        coordinator: Pre-built coordinator; built from settings at startup
            if omitted, and then also closed at shutdown

    Returns:
        Configured FastAPI app
    """
    app_settings = app_settings or settings

    app = FastAPI(
        title="Sentiment Analysis Service",
        description="Sentiment classification backed by a local Ollama model",
        version=app_settings.APP_VERSION,
        debug=app_settings.DEBUG,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = app_settings
    app.state.coordinator = coordinator
    app.state.owns_coordinator = coordinator is None

    # Request tracing middleware (must be first for request_id in all logs)
    app.add_middleware(RequestTracingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for exc_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exc_class, handler)

    app.include_router(sync_router, tags=["sync"])
    app.include_router(async_router, prefix="/analyze", tags=["async"])

    @app.on_event("startup")
    async def startup():
        """Build components and verify dependencies."""
        logger.info(
            "Application startup",
            version=app_settings.APP_VERSION,
            environment=app_settings.ENVIRONMENT,
            ollama_base_url=app_settings.OLLAMA_BASE_URL,
            model=app_settings.OLLAMA_MODEL,
            result_store=app_settings.RESULT_STORE_BACKEND,
        )

        if app.state.coordinator is None:
            app.state.coordinator = build_coordinator(app_settings)
        coordinator: RequestCoordinator = app.state.coordinator

        try:
            await coordinator.store.create_schema()
        except StorageError as e:
            # /health reports the store as unreachable until it recovers
            logger.error("Result store initialization failed", error=str(e))

        if await coordinator.client.health_check():
            logger.info("Ollama connection successful")
        else:
            logger.warning("Ollama not reachable at startup", base_url=coordinator.client.base_url)

        logger.info("Application startup complete")

    @app.on_event("shutdown")
    async def shutdown():
        """Close connections owned by the app."""
        logger.info("Application shutdown")
        if app.state.owns_coordinator and app.state.coordinator is not None:
            await app.state.coordinator.close()
        logger.info("Application shutdown complete")

    if app_settings.PROMETHEUS_ENABLED:
        Instrumentator().instrument(app).expose(app)

    @app.get("/")
    async def root():
        """Root endpoint with API documentation links."""
        return {
            "service": app_settings.APP_NAME,
            "version": app_settings.APP_VERSION,
            "docs": "/docs",
            "analyze": "/analyze",
            "health": "/health",
            "metrics": "/metrics" if app_settings.PROMETHEUS_ENABLED else None,
        }

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "sentiment_service.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        log_config=None,  # structlog owns logging
    )


if __name__ == "__main__":
    run()
