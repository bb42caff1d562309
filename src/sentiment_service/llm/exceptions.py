"""
Exceptions raised by the inference client.

The client retries transient failures itself; what escapes it is final.
``retryable`` records whether the failure class was one the client retries
(so a surfaced retryable error means the retry budget is spent).
"""

from typing import Any

from sentiment_service.exceptions import SentimentServiceError


class BackendError(SentimentServiceError):
    """
    Base exception for all inference backend errors.

    Every BackendError counts as a failure for the circuit breaker.
    """

    error_code = "backend_error"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ):
        super().__init__(message, details)
        self.retryable = retryable


class BackendUnavailable(BackendError):
    """
    The backend could not be reached or refused the request.

    Network errors, HTTP 5xx and 429 are retryable; other 4xx (including
    404 model-not-found) are not.
    """

    error_code = "backend_unavailable"


class BackendTimeout(BackendError):
    """
    A backend call exceeded OLLAMA_TIMEOUT.

    Retried with backoff; surfaced once the retry budget is spent.
    """

    error_code = "backend_timeout"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, retryable=True)


class MalformedResponse(BackendError):
    """
    The backend answered but broke its contract.

    Invalid JSON envelope, empty generation, or text from which no
    sentiment label / valid confidence can be extracted. Not retried.
    """

    error_code = "malformed_backend_response"

    def __init__(
        self,
        message: str,
        raw_content: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        if raw_content:
            # First 500 chars are enough to debug without flooding logs
            details["content_snippet"] = raw_content[:500]
        super().__init__(message, details, retryable=False)
