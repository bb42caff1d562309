"""
Synchronous API routes: classify one text and wait for the result.

For batch workloads, use the async routes (POST /analyze/batch) instead.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from sentiment_service.api.dependencies import get_coordinator, get_settings
from sentiment_service.api.models import (
    AnalyzeRequestBody,
    AnalyzeResponse,
    ErrorResponse,
    HealthResponse,
    VersionResponse,
)
from sentiment_service.config import Settings
from sentiment_service.models.analysis import AnalysisRequest
from sentiment_service.models.enums import CircuitState, SentimentLabel
from sentiment_service.service.coordinator import RequestCoordinator

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    status_code=status.HTTP_200_OK,
    summary="Classify the sentiment of one text",
    description="""
    Classify a single text synchronously.

    Identical texts (after normalisation) are served from the result store
    while fresh, and concurrent identical requests share one backend call.
    """,
    responses={
        200: {"description": "Analysis completed"},
        400: {"model": ErrorResponse, "description": "Empty or over-long text"},
        502: {"model": ErrorResponse, "description": "Backend unavailable or malformed response"},
        503: {"model": ErrorResponse, "description": "Overloaded; retry after Retry-After seconds"},
        504: {"model": ErrorResponse, "description": "Backend timed out"},
    },
)
async def analyze_text(
    body: AnalyzeRequestBody,
    request: Request,
    coordinator: RequestCoordinator = Depends(get_coordinator),
) -> AnalyzeResponse:
    request_id = body.request_id or getattr(request.state, "request_id", None)
    result = await coordinator.analyze(AnalysisRequest(text=body.text, request_id=request_id))
    return AnalyzeResponse.from_result(result, request_id=request_id)


@router.get(
    "/analyze/{fingerprint}",
    response_model=AnalyzeResponse,
    summary="Get a stored result by fingerprint",
    responses={
        400: {"model": ErrorResponse, "description": "Not a SHA-256 hex digest"},
        404: {"description": "No stored result"},
    },
)
async def get_stored_result(
    fingerprint: str,
    coordinator: RequestCoordinator = Depends(get_coordinator),
) -> AnalyzeResponse:
    result = await coordinator.get_result(fingerprint)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No stored result for fingerprint {fingerprint}",
        )
    return AnalyzeResponse.from_result(result)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="""
    Check the health of the service and its dependencies.

    - healthy: Ollama and the result store reachable, circuit closed
    - degraded: both reachable but the circuit is open or half-open
    - unhealthy (503): Ollama or the result store unreachable
    """,
    responses={
        200: {"description": "Healthy or degraded"},
        503: {"description": "A critical dependency is unreachable"},
    },
)
async def health_check(
    coordinator: RequestCoordinator = Depends(get_coordinator),
    settings: Settings = Depends(get_settings),
):
    backend_ok = await coordinator.client.health_check()
    store_ok = await coordinator.store.health_check()
    stats = coordinator.stats()
    circuit = CircuitState(stats["circuit_state"])

    services = {
        "ollama": "ok" if backend_ok else "unreachable",
        "result_store": "ok" if store_ok else "unreachable",
        "circuit": circuit.value,
    }

    if not (backend_ok and store_ok):
        health_status = "unhealthy"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif circuit is not CircuitState.CLOSED:
        health_status = "degraded"
        status_code = status.HTTP_200_OK
    else:
        health_status = "healthy"
        status_code = status.HTTP_200_OK

    logger.info("Health check", status=health_status, services=services)

    response = HealthResponse(
        status=health_status,
        version=settings.APP_VERSION,
        services=services,
        backend_load={
            "in_flight": stats["in_flight"],
            "queued": stats["queued"],
            "pending_fingerprints": stats["pending_fingerprints"],
        },
    )
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json"),
    )


@router.get(
    "/version",
    response_model=VersionResponse,
    summary="Get service version information",
)
async def get_version(
    coordinator: RequestCoordinator = Depends(get_coordinator),
    settings: Settings = Depends(get_settings),
) -> VersionResponse:
    return VersionResponse(
        service_version=settings.APP_VERSION,
        model_name=coordinator.client.model,
        result_store=coordinator.store.backend_name,
        labels=[label.value for label in SentimentLabel],
        config={
            "freshness_ttl_seconds": str(coordinator.freshness_ttl_seconds),
            "max_text_length": str(coordinator.max_text_length),
            "max_concurrent_backend_calls": str(coordinator.admission.max_concurrent),
            "max_queue_depth": str(coordinator.admission.max_queue_depth),
            "temperature": str(settings.LLM_TEMPERATURE),
        },
    )
