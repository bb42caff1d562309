"""Request coordination: validation, fingerprinting, coalescing, dispatch."""

from sentiment_service.service.coordinator import RequestCoordinator, build_coordinator
from sentiment_service.service.fingerprint import compute_fingerprint, normalize_text

__all__ = [
    "RequestCoordinator",
    "build_coordinator",
    "compute_fingerprint",
    "normalize_text",
]
