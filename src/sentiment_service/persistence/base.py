"""
Result store interface.

Every backend offers the same contract:
- upsert(fingerprint, result) is idempotent: writing the same payload twice
  is observably a no-op, a newer payload replaces the older one
- get(fingerprint) returns a whole record or None, never a partial one
- driver failures surface as StorageError
"""

from abc import ABC, abstractmethod
from typing import Optional

from sentiment_service.models.analysis import AnalysisResult


class ResultStore(ABC):
    """Abstract storage for AnalysisResult records keyed by fingerprint."""

    backend_name = "abstract"

    @abstractmethod
    async def upsert(self, fingerprint: str, result: AnalysisResult) -> None:
        """
        Insert or replace the result stored under fingerprint.

        Raises:
            ValueError: fingerprint does not match result.fingerprint
            StorageError: The write was not confirmed
        """

    @abstractmethod
    async def get(self, fingerprint: str) -> Optional[AnalysisResult]:
        """
        Return the stored result, or None.

        Raises:
            StorageError: The read failed
        """

    async def create_schema(self) -> None:
        """Prepare storage (tables, indexes). No-op by default."""

    async def health_check(self) -> bool:
        """True when the store is reachable. Must not raise."""
        return True

    async def close(self) -> None:
        """Release connections. No-op by default."""

    @staticmethod
    def _check_key(fingerprint: str, result: AnalysisResult) -> None:
        if fingerprint != result.fingerprint:
            raise ValueError(
                f"Fingerprint mismatch: key {fingerprint!r} != result {result.fingerprint!r}"
            )
