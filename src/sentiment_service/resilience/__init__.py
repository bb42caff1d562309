"""
Backpressure for the inference backend.

- CircuitBreaker: sheds load while the backend is failing
- AdmissionController: caps concurrent backend calls, bounds the wait queue
- BackoffPolicy: exponential backoff with jitter between client retries
"""

from sentiment_service.resilience.admission import AdmissionController
from sentiment_service.resilience.backoff import BackoffPolicy
from sentiment_service.resilience.circuit_breaker import BackendHealthState, CircuitBreaker

__all__ = [
    "AdmissionController",
    "BackoffPolicy",
    "BackendHealthState",
    "CircuitBreaker",
]
