"""In-process result store for development and tests."""

import threading
from typing import Optional

import structlog

from sentiment_service.models.analysis import AnalysisResult
from sentiment_service.persistence.base import ResultStore

logger = structlog.get_logger(__name__)


class InMemoryResultStore(ResultStore):
    """
    Dict-backed store.

    Results are frozen pydantic models, so readers always see a complete
    snapshot; the lock makes each write atomic across threads.
    """

    backend_name = "memory"

    def __init__(self) -> None:
        self._results: dict[str, AnalysisResult] = {}
        self._lock = threading.Lock()

    async def upsert(self, fingerprint: str, result: AnalysisResult) -> None:
        self._check_key(fingerprint, result)
        with self._lock:
            if self._results.get(fingerprint) == result:
                return
            self._results[fingerprint] = result
        logger.debug("Stored result", fingerprint=fingerprint, backend=self.backend_name)

    async def get(self, fingerprint: str) -> Optional[AnalysisResult]:
        with self._lock:
            return self._results.get(fingerprint)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)
