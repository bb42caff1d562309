"""FastAPI middleware for request correlation and access logging."""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128


def resolve_request_id(request: Request) -> str:
    """Caller-supplied X-Request-ID when usable, else a fresh UUID4."""
    candidate = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if candidate and len(candidate) <= MAX_REQUEST_ID_LENGTH:
        return candidate
    return str(uuid.uuid4())


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Correlates every request with a request id.

    The id is stored on ``request.state.request_id`` (used as the default
    AnalysisRequest id), bound into structlog contextvars for the lifetime
    of the request, and echoed back in the X-Request-ID response header.
    One access log line is written per request.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        request_id = resolve_request_id(request)
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except Exception:
            logger.exception("Unhandled error while serving request")
            raise
        finally:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            log = logger.warning if status_code >= 500 else logger.info
            log("Request served", status_code=status_code, duration_ms=elapsed_ms)
            structlog.contextvars.clear_contextvars()
