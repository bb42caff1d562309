"""
Bounded admission to the inference backend.

At most ``max_concurrent`` backend calls run at once; at most
``max_queue_depth`` further callers wait for a slot, each for at most
``queue_timeout`` seconds. Everything beyond that is shed immediately with
ServiceOverloaded instead of piling up in memory.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog

from sentiment_service.exceptions import ServiceOverloaded
from sentiment_service.monitoring.metrics import (
    backend_in_flight,
    backend_queued,
    load_shed_total,
)

logger = structlog.get_logger(__name__)


class AdmissionController:
    """Concurrency cap plus bounded wait queue for backend calls."""

    def __init__(
        self,
        max_concurrent: int,
        max_queue_depth: int = 0,
        queue_timeout: Optional[float] = None,
    ):
        """
        Args:
            max_concurrent: Backend calls allowed in flight at once
            max_queue_depth: Callers allowed to wait for a slot
            queue_timeout: Longest wait for a slot in seconds (None or 0 = no limit)
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        if max_queue_depth < 0:
            raise ValueError("max_queue_depth must be >= 0")

        self.max_concurrent = max_concurrent
        self.max_queue_depth = max_queue_depth
        self.queue_timeout = queue_timeout or None
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._in_flight = 0
        self._waiting = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def waiting(self) -> int:
        return self._waiting

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """
        Hold one backend slot for the duration of the block.

        The slot is released on every exit path, cancellation included.

        Raises:
            ServiceOverloaded: reason "queue_full" or "queue_timeout"
        """
        if self._semaphore.locked() and self._waiting >= self.max_queue_depth:
            load_shed_total.labels(reason="queue_full").inc()
            logger.warning(
                "Backend queue full, shedding request",
                in_flight=self._in_flight,
                waiting=self._waiting,
                max_queue_depth=self.max_queue_depth,
            )
            raise ServiceOverloaded(
                "Too many concurrent analysis requests",
                reason="queue_full",
                details={"in_flight": self._in_flight, "waiting": self._waiting},
            )

        self._waiting += 1
        backend_queued.set(self._waiting)
        try:
            await asyncio.wait_for(self._semaphore.acquire(), timeout=self.queue_timeout)
        except asyncio.TimeoutError:
            load_shed_total.labels(reason="queue_timeout").inc()
            raise ServiceOverloaded(
                f"Waited more than {self.queue_timeout}s for a backend slot",
                reason="queue_timeout",
                details={"queue_timeout_seconds": self.queue_timeout},
            ) from None
        finally:
            self._waiting -= 1
            backend_queued.set(self._waiting)

        self._in_flight += 1
        backend_in_flight.set(self._in_flight)
        try:
            yield
        finally:
            self._in_flight -= 1
            backend_in_flight.set(self._in_flight)
            self._semaphore.release()
