"""Custom Prometheus metrics for the Sentiment Analysis Service.

Exposed at /metrics. Alerting should watch:
- circuit_state (backend down)
- load_shed_total (sustained overload)
- backend_call_latency_seconds (slow backend)
- malformed_responses_total (model ignoring the output contract)
"""

from prometheus_client import Counter, Gauge, Histogram

# === Analysis Metrics ===

analysis_requests_total = Counter(
    "sentiment_analysis_requests_total",
    "Analysis requests by outcome",
    ["outcome"],
)
"""
Labels:
- outcome: success, cached, coalesced, or an error code
  (invalid_input, service_overloaded, backend_timeout, ...)
"""

sentiment_labels_total = Counter(
    "sentiment_labels_total",
    "Sentiment labels produced by the backend",
    ["label"],
)
"""Label distribution; a sudden shift usually means model or prompt drift."""

# === Backend Metrics ===

backend_call_latency_seconds = Histogram(
    "sentiment_backend_call_latency_seconds",
    "Latency of classify calls to the inference backend, retries included",
    ["outcome"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

backend_retries_total = Counter(
    "sentiment_backend_retries_total",
    "Backend call retries by failure reason",
    ["reason"],
)

malformed_responses_total = Counter(
    "sentiment_malformed_responses_total",
    "Backend answers that could not be mapped to a label",
    ["reason"],
)

# === Backpressure Metrics ===

circuit_state = Gauge(
    "sentiment_circuit_state",
    "Circuit breaker state (0=closed, 1=half-open, 2=open)",
    ["backend"],
)

circuit_transitions_total = Counter(
    "sentiment_circuit_transitions_total",
    "Circuit breaker state transitions",
    ["backend", "to_state"],
)

load_shed_total = Counter(
    "sentiment_load_shed_total",
    "Requests rejected with ServiceOverloaded by reason",
    ["reason"],
)
"""
Labels:
- reason: circuit_open, circuit_half_open, queue_full, queue_timeout
"""

backend_in_flight = Gauge(
    "sentiment_backend_in_flight",
    "Backend calls currently in flight",
)

backend_queued = Gauge(
    "sentiment_backend_queued",
    "Requests waiting for a backend slot",
)
