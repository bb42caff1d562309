"""
Domain models for sentiment analysis requests and results.

AnalysisRequest is ephemeral (one per inbound call). AnalysisResult is the
persisted record, keyed by the fingerprint of the normalised input text.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sentiment_service.models.enums import SentimentLabel


class AnalysisRequest(BaseModel):
    """
    Inbound analysis request.

    Length and emptiness are checked by the coordinator against the
    configured MAX_TEXT_LENGTH, so that failures surface as InvalidInput
    instead of a request-parsing error.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Free text to classify")
    request_id: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Optional caller-supplied correlation id",
    )


class Classification(BaseModel):
    """Output of one inference backend call."""

    model_config = ConfigDict(frozen=True)

    label: SentimentLabel
    confidence: float = Field(..., ge=0.0, le=1.0)
    model_id: str = Field(..., min_length=1)


class AnalysisResult(BaseModel):
    """
    Stored sentiment analysis result.

    The fingerprint uniquely identifies one stored result; writing the same
    fingerprint with the same payload again is a no-op.
    """

    model_config = ConfigDict(frozen=True)

    fingerprint: str = Field(
        ...,
        min_length=64,
        max_length=64,
        description="SHA-256 hex digest of the normalised input text",
    )
    label: SentimentLabel
    confidence: float = Field(..., ge=0.0, le=1.0)
    model_id: str = Field(..., min_length=1, description="Backend model that produced the label")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the backend produced the classification (UTC)",
    )

    @field_validator("created_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        # Some drivers (SQLite) hand back naive datetimes
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @classmethod
    def from_classification(
        cls, fingerprint: str, classification: Classification
    ) -> "AnalysisResult":
        return cls(
            fingerprint=fingerprint,
            label=classification.label,
            confidence=classification.confidence,
            model_id=classification.model_id,
        )

    def is_fresh(self, ttl_seconds: float, now: Optional[datetime] = None) -> bool:
        """True while the result is younger than ttl_seconds."""
        if ttl_seconds <= 0:
            return False
        now = now or datetime.now(timezone.utc)
        return now - self.created_at < timedelta(seconds=ttl_seconds)
