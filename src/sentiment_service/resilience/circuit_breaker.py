"""
Circuit breaker guarding the inference backend.

State machine:

    CLOSED --(failure rate >= threshold over the sliding window,
              with at least minimum_calls outcomes)--> OPEN
    OPEN --(cooldown elapsed)--> HALF_OPEN (one probe request admitted)
    HALF_OPEN --(probe succeeds)--> CLOSED
    HALF_OPEN --(probe fails)--> OPEN

While OPEN, callers are rejected with ServiceOverloaded without touching
the backend, so a dead backend costs near-zero latency instead of a queue
of timeouts.

One instance per backend, injected into the coordinator and the client.
All state lives behind a lock; the clock is injectable for tests.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

import structlog

from sentiment_service.exceptions import ServiceOverloaded
from sentiment_service.models.enums import CircuitState
from sentiment_service.monitoring.metrics import (
    circuit_state,
    circuit_transitions_total,
    load_shed_total,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BackendHealthState:
    """
    Point-in-time snapshot of backend health.

    Attributes:
        state: Current circuit state
        failure_count: Failures recorded inside the sliding window
        call_count: Outcomes recorded inside the sliding window
        consecutive_failures: Failures since the last success
        last_failure_at: Clock value of the most recent failure
        opened_at: Clock value when the circuit last opened
    """

    state: CircuitState
    failure_count: int
    call_count: int
    consecutive_failures: int
    last_failure_at: Optional[float]
    opened_at: Optional[float]

    @property
    def failure_rate(self) -> float:
        if self.call_count == 0:
            return 0.0
        return self.failure_count / self.call_count


class CircuitBreaker:
    """Sliding-window failure-rate circuit breaker."""

    def __init__(
        self,
        failure_rate_threshold: float = 0.5,
        minimum_calls: int = 5,
        window_seconds: float = 60.0,
        cooldown_seconds: float = 30.0,
        name: str = "ollama",
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            failure_rate_threshold: Failure ratio (0..1] that opens the circuit
            minimum_calls: Outcomes required in the window before it can open
            window_seconds: Length of the sliding window
            cooldown_seconds: Time spent OPEN before a probe is admitted
            name: Backend name used in logs and metric labels
            clock: Monotonic clock (seconds)
        """
        if not 0.0 < failure_rate_threshold <= 1.0:
            raise ValueError("failure_rate_threshold must be in (0, 1]")
        if minimum_calls < 1:
            raise ValueError("minimum_calls must be >= 1")
        if window_seconds <= 0 or cooldown_seconds < 0:
            raise ValueError("window_seconds must be > 0 and cooldown_seconds >= 0")

        self.failure_rate_threshold = failure_rate_threshold
        self.minimum_calls = minimum_calls
        self.window_seconds = window_seconds
        self.cooldown_seconds = cooldown_seconds
        self.name = name
        self._clock = clock

        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._outcomes: Deque[tuple[float, bool]] = deque()
        self._consecutive_failures = 0
        self._last_failure_at: Optional[float] = None
        self._opened_at: Optional[float] = None
        self._probe_in_flight = False

        circuit_state.labels(backend=self.name).set(CircuitState.get_ordinal(self._state))

    @classmethod
    def from_settings(cls, settings) -> "CircuitBreaker":
        return cls(
            failure_rate_threshold=settings.CIRCUIT_FAILURE_RATE_THRESHOLD,
            minimum_calls=settings.CIRCUIT_MINIMUM_CALLS,
            window_seconds=settings.CIRCUIT_WINDOW_SECONDS,
            cooldown_seconds=settings.CIRCUIT_COOLDOWN_SECONDS,
        )

    # === Reads ===

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._refresh(self._clock())
            return self._state

    def snapshot(self) -> BackendHealthState:
        with self._lock:
            now = self._clock()
            self._refresh(now)
            failures = sum(1 for _, ok in self._outcomes if not ok)
            return BackendHealthState(
                state=self._state,
                failure_count=failures,
                call_count=len(self._outcomes),
                consecutive_failures=self._consecutive_failures,
                last_failure_at=self._last_failure_at,
                opened_at=self._opened_at,
            )

    def retry_after(self) -> float:
        """Seconds until an OPEN circuit admits a probe (0 when not OPEN)."""
        with self._lock:
            now = self._clock()
            self._refresh(now)
            return self._remaining_cooldown(now)

    # === Admission ===

    def allow_request(self) -> bool:
        """
        Ask permission to call the backend.

        In HALF_OPEN exactly one caller (the probe) gets True until its
        outcome is recorded or release_probe() is called.
        """
        allowed, _ = self._admit()
        return allowed

    def check(self) -> bool:
        """
        Raise ServiceOverloaded unless allow_request() grants the call.

        Returns:
            True when the caller was admitted as the half-open probe. That
            caller must get an outcome recorded or call release_probe().

        Raises:
            ServiceOverloaded: reason "circuit_open" or "circuit_half_open"
        """
        allowed, probe = self._admit()
        if allowed:
            return probe
        with self._lock:
            now = self._clock()
            state = self._state
            retry_after = self._remaining_cooldown(now)
        reason = "circuit_open" if state is CircuitState.OPEN else "circuit_half_open"
        raise self._rejection(reason, retry_after)

    def reject_if_open(self) -> None:
        """
        Fail fast while OPEN, without taking a probe permit.

        Lets callers skip queueing for a backend slot when the answer is
        already known; check() stays the authoritative gate.
        """
        with self._lock:
            now = self._clock()
            self._refresh(now)
            if self._state is not CircuitState.OPEN:
                return
            retry_after = self._remaining_cooldown(now)
        raise self._rejection("circuit_open", retry_after)

    def release_probe(self) -> None:
        """Give back a probe permit that never reached the backend."""
        with self._lock:
            self._probe_in_flight = False

    def _admit(self) -> tuple[bool, bool]:
        with self._lock:
            self._refresh(self._clock())
            if self._state is CircuitState.CLOSED:
                return True, False
            if self._state is CircuitState.HALF_OPEN and not self._probe_in_flight:
                self._probe_in_flight = True
                logger.info("Circuit half-open: admitting probe request", backend=self.name)
                return True, True
            return False, False

    def _rejection(self, reason: str, retry_after: float) -> ServiceOverloaded:
        load_shed_total.labels(reason=reason).inc()
        return ServiceOverloaded(
            "Inference backend is unavailable; request rejected without dispatch",
            reason=reason,
            retry_after=retry_after,
            details={"backend": self.name},
        )

    # === Outcomes ===

    def record_success(self, latency_seconds: float = 0.0) -> None:
        with self._lock:
            now = self._clock()
            self._refresh(now)
            self._consecutive_failures = 0
            if self._state is CircuitState.HALF_OPEN:
                self._outcomes.clear()
                self._transition(CircuitState.CLOSED, now)
                return
            if self._state is CircuitState.CLOSED:
                self._outcomes.append((now, True))
                self._prune(now)

    def record_failure(self, error: Optional[BaseException] = None, latency_seconds: float = 0.0) -> None:
        with self._lock:
            now = self._clock()
            self._refresh(now)
            self._consecutive_failures += 1
            self._last_failure_at = now
            if self._state is CircuitState.HALF_OPEN:
                self._transition(CircuitState.OPEN, now, error=error)
                return
            if self._state is CircuitState.OPEN:
                return
            self._outcomes.append((now, False))
            self._prune(now)

            calls = len(self._outcomes)
            failures = sum(1 for _, ok in self._outcomes if not ok)
            if calls >= self.minimum_calls and failures / calls >= self.failure_rate_threshold:
                self._transition(
                    CircuitState.OPEN,
                    now,
                    error=error,
                    failures=failures,
                    calls=calls,
                )

    def reset(self) -> None:
        """Force the circuit back to CLOSED with an empty window."""
        with self._lock:
            self._outcomes.clear()
            self._consecutive_failures = 0
            self._last_failure_at = None
            self._transition(CircuitState.CLOSED, self._clock())

    # === Internals (lock held) ===

    def _refresh(self, now: float) -> None:
        self._prune(now)
        if self._state is CircuitState.OPEN and self._remaining_cooldown(now) <= 0:
            self._transition(CircuitState.HALF_OPEN, now)

    def _prune(self, now: float) -> None:
        horizon = now - self.window_seconds
        while self._outcomes and self._outcomes[0][0] <= horizon:
            self._outcomes.popleft()

    def _remaining_cooldown(self, now: float) -> float:
        if self._state is not CircuitState.OPEN or self._opened_at is None:
            return 0.0
        return max(0.0, self._opened_at + self.cooldown_seconds - now)

    def _transition(self, new_state: CircuitState, now: float, error: Optional[BaseException] = None, **fields) -> None:
        old_state = self._state
        self._state = new_state
        self._probe_in_flight = False
        if new_state is CircuitState.OPEN:
            self._opened_at = now
            self._outcomes.clear()
        elif new_state is CircuitState.CLOSED:
            self._opened_at = None

        if old_state is new_state:
            return

        circuit_state.labels(backend=self.name).set(CircuitState.get_ordinal(new_state))
        circuit_transitions_total.labels(backend=self.name, to_state=new_state.value).inc()
        log = logger.warning if new_state is CircuitState.OPEN else logger.info
        log(
            "Circuit state changed",
            backend=self.name,
            from_state=old_state.value,
            to_state=new_state.value,
            error_type=type(error).__name__ if error else None,
            **fields,
        )
