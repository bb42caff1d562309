"""Monitoring and metrics instrumentation for the Sentiment Analysis Service.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from sentiment_service.monitoring.metrics import (
    analysis_requests_total,
    backend_call_latency_seconds,
    backend_in_flight,
    backend_queued,
    backend_retries_total,
    circuit_state,
    circuit_transitions_total,
    load_shed_total,
    malformed_responses_total,
    sentiment_labels_total,
)

__all__ = [
    "analysis_requests_total",
    "sentiment_labels_total",
    "backend_call_latency_seconds",
    "backend_retries_total",
    "malformed_responses_total",
    "circuit_state",
    "circuit_transitions_total",
    "load_shed_total",
    "backend_in_flight",
    "backend_queued",
]
