"""
Error taxonomy shared by every layer of the service.

Each error carries a stable ``error_code`` so callers (and the HTTP layer)
can tell overload, backend failure, bad input and storage failure apart.
Backend-specific errors live in ``sentiment_service.llm.exceptions``.
"""

from typing import Any


class SentimentServiceError(Exception):
    """
    Base exception for all service errors.

    Attributes:
        message: Human-readable description
        details: Structured context for logs and error responses
    """

    error_code = "internal_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidInput(SentimentServiceError):
    """
    Client error: empty text or text longer than MAX_TEXT_LENGTH.

    Never retried; the backend is not contacted.
    """

    error_code = "invalid_input"


class ServiceOverloaded(SentimentServiceError):
    """
    Load was shed before reaching the backend.

    Raised when the circuit is open, the half-open probe is taken, or the
    backend queue is full / timed out. ``reason`` names which one.
    """

    error_code = "service_overloaded"

    def __init__(
        self,
        message: str,
        reason: str,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        details["reason"] = reason
        if retry_after is not None:
            details["retry_after_seconds"] = round(retry_after, 3)
        super().__init__(message, details)
        self.reason = reason
        self.retry_after = retry_after


class StorageError(SentimentServiceError):
    """
    The result store failed to read or write.

    A result is not considered durable (and is not returned) until the
    store confirms the write.
    """

    error_code = "storage_error"
