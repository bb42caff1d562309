"""
FastAPI exception handlers for structured error responses.

Maps the service error taxonomy to HTTP status codes. Every error body has
the same shape: {error, message, details, timestamp}.
"""

import math
from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sentiment_service.exceptions import (
    InvalidInput,
    SentimentServiceError,
    ServiceOverloaded,
    StorageError,
)
from sentiment_service.llm.exceptions import (
    BackendTimeout,
    BackendUnavailable,
    MalformedResponse,
)

logger = structlog.get_logger(__name__)

# Most specific class first
STATUS_CODES: list[tuple[type[SentimentServiceError], int]] = [
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (ServiceOverloaded, status.HTTP_503_SERVICE_UNAVAILABLE),
    (BackendTimeout, status.HTTP_504_GATEWAY_TIMEOUT),
    (MalformedResponse, status.HTTP_502_BAD_GATEWAY),
    (BackendUnavailable, status.HTTP_502_BAD_GATEWAY),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]

DEFAULT_RETRY_AFTER_SECONDS = 1


def status_code_for(exc: SentimentServiceError) -> int:
    for exc_class, status_code in STATUS_CODES:
        if isinstance(exc, exc_class):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_body(error: str, message: str, details: Optional[Any] = None) -> dict[str, Any]:
    return {
        "error": error,
        "message": message,
        "details": jsonable_encoder(details) if details else None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def service_error_handler(request: Request, exc: SentimentServiceError) -> JSONResponse:
    """
    Handle every SentimentServiceError.

    ServiceOverloaded additionally carries a Retry-After header so clients
    can tell "back off" apart from "backend is broken".
    """
    status_code = status_code_for(exc)
    log = logger.error if status_code >= 500 and status_code != 503 else logger.warning
    log(
        "Request rejected",
        error_code=exc.error_code,
        error_type=type(exc).__name__,
        status_code=status_code,
        details=exc.details,
    )

    headers = None
    if isinstance(exc, ServiceOverloaded):
        retry_after = exc.retry_after if exc.retry_after else DEFAULT_RETRY_AFTER_SECONDS
        headers = {"Retry-After": str(max(1, math.ceil(retry_after)))}

    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.error_code, exc.message, exc.details),
        headers=headers,
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle malformed request bodies (missing fields, wrong types).

    Maps to 422 Unprocessable Entity.
    """
    logger.warning("Invalid request format", errors=exc.errors())

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(
            "invalid_request",
            "Request validation failed",
            {"errors": exc.errors()},
        ),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Maps to 500 Internal Server Error.
    """
    logger.exception("Unexpected error", error_type=type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("internal_error", "An unexpected error occurred"),
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    SentimentServiceError: service_error_handler,
    RequestValidationError: request_validation_error_handler,
    Exception: generic_error_handler,
}
