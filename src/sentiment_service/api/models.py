"""
API-specific request and response models for FastAPI endpoints.

These wrap the core domain models (AnalysisRequest, AnalysisResult) with
API metadata such as the correlation id and service status.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from sentiment_service.models.analysis import AnalysisResult
from sentiment_service.models.enums import SentimentLabel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyzeRequestBody(BaseModel):
    """Body of POST /analyze."""

    text: str = Field(
        description="Free text to classify",
        examples=["I love this product"],
    )
    request_id: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Caller correlation id (defaults to the X-Request-ID of the call)",
    )


class AnalyzeResponse(BaseModel):
    """Classification returned by POST /analyze."""

    request_id: Optional[str] = Field(default=None, description="Correlation id")
    fingerprint: str = Field(description="SHA-256 of the normalised text")
    label: SentimentLabel = Field(examples=["POSITIVE"])
    confidence: float = Field(ge=0.0, le=1.0, examples=[0.93])
    model_id: str = Field(description="Backend model that produced the label")
    created_at: datetime = Field(description="When the label was produced (UTC)")

    @classmethod
    def from_result(cls, result: AnalysisResult, request_id: Optional[str] = None) -> "AnalyzeResponse":
        return cls(request_id=request_id, **result.model_dump())


class BatchSubmitRequest(BaseModel):
    """Request for batch analysis submission."""

    requests: list[AnalyzeRequestBody] = Field(
        description="Texts to analyze asynchronously",
        min_length=1,
        max_length=100,  # Soft limit to prevent worker overload
    )


class BatchSubmitResponse(BaseModel):
    """Response for batch submission endpoint."""

    batch_id: str = Field(description="Unique batch identifier (UUID)")
    task_count: int = Field(description="Number of tasks submitted", ge=0)
    task_ids: list[str] = Field(description="Celery task IDs for tracking")
    submitted_at: datetime = Field(default_factory=_utcnow)


class TaskStatusResponse(BaseModel):
    """Response for task status check endpoint."""

    task_id: str
    status: str = Field(
        description="Task state: PENDING, STARTED, SUCCESS, FAILURE, RETRY",
        examples=["PENDING", "STARTED", "SUCCESS", "FAILURE", "RETRY"],
    )
    result: Optional[AnalyzeResponse] = Field(
        default=None,
        description="Analysis result (present only if status=SUCCESS)",
    )
    error: Optional[str] = Field(
        default=None,
        description="Error message (present only if status=FAILURE)",
    )


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(examples=["healthy", "degraded", "unhealthy"])
    version: str = Field(examples=["0.1.0"])
    services: dict[str, str] = Field(
        description="Per-dependency status",
        examples=[{"ollama": "ok", "result_store": "ok", "circuit": "closed"}],
    )
    backend_load: dict[str, Any] = Field(
        default_factory=dict,
        description="In-flight and queued backend calls",
    )
    timestamp: datetime = Field(default_factory=_utcnow)


class VersionResponse(BaseModel):
    """Response for version info endpoint."""

    service_version: str
    model_name: str = Field(description="Ollama model name (e.g., 'llama3.2:3b')")
    result_store: str = Field(examples=["sql", "redis", "memory"])
    labels: list[str] = Field(description="Sentiment label taxonomy")
    config: dict[str, str] = Field(
        description="Behaviour-relevant settings",
        examples=[{"freshness_ttl_seconds": "86400", "max_text_length": "5000"}],
    )


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(
        description="Stable error code",
        examples=["invalid_input", "service_overloaded", "backend_unavailable"],
    )
    message: str
    details: Optional[dict] = None
    timestamp: datetime = Field(default_factory=_utcnow)
