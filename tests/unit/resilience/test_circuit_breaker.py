"""Unit tests for CircuitBreaker (driven by a fake clock)."""

import pytest
from prometheus_client import REGISTRY

from sentiment_service.exceptions import ServiceOverloaded
from sentiment_service.llm.exceptions import BackendTimeout
from sentiment_service.models.enums import CircuitState
from sentiment_service.resilience.circuit_breaker import CircuitBreaker


def fail(breaker: CircuitBreaker, times: int = 1) -> None:
    for _ in range(times):
        breaker.record_failure(BackendTimeout("slow"), 1.0)


def shed_count(reason: str) -> float:
    return REGISTRY.get_sample_value("sentiment_load_shed_total", {"reason": reason}) or 0.0


class TestClosed:
    def test_starts_closed_and_allows_requests(self, breaker):
        assert breaker.state == CircuitState.CLOSED
        assert breaker.allow_request() is True
        breaker.check()

    def test_stays_closed_below_minimum_calls(self, breaker):
        fail(breaker, 2)

        assert breaker.state == CircuitState.CLOSED
        assert breaker.snapshot().failure_count == 2

    def test_stays_closed_below_failure_rate(self, breaker):
        breaker.record_success(0.1)
        breaker.record_success(0.1)
        breaker.record_success(0.1)
        fail(breaker, 2)

        snapshot = breaker.snapshot()
        assert snapshot.state == CircuitState.CLOSED
        assert snapshot.failure_rate == pytest.approx(0.4)

    def test_success_resets_consecutive_failures(self, breaker):
        fail(breaker, 2)
        breaker.record_success(0.1)

        assert breaker.snapshot().consecutive_failures == 0

    def test_old_outcomes_leave_the_window(self, breaker, fake_clock):
        fail(breaker, 2)
        fake_clock.advance(61)
        fail(breaker, 1)

        snapshot = breaker.snapshot()
        assert snapshot.state == CircuitState.CLOSED
        assert snapshot.call_count == 1


class TestOpen:
    def test_opens_after_k_failures(self, breaker):
        fail(breaker, 3)

        assert breaker.state == CircuitState.OPEN
        assert breaker.allow_request() is False

    def test_check_fails_fast_with_retry_after(self, breaker, fake_clock):
        fail(breaker, 3)
        fake_clock.advance(10)

        with pytest.raises(ServiceOverloaded) as exc_info:
            breaker.check()

        assert exc_info.value.reason == "circuit_open"
        assert exc_info.value.retry_after == pytest.approx(20.0)
        assert breaker.retry_after() == pytest.approx(20.0)

    def test_outcomes_ignored_while_open(self, breaker):
        fail(breaker, 3)
        breaker.record_success(0.1)

        assert breaker.state == CircuitState.OPEN


class TestHalfOpen:
    def test_cooldown_moves_to_half_open(self, breaker, fake_clock):
        fail(breaker, 3)
        fake_clock.advance(30)

        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.retry_after() == 0.0

    def test_single_probe_admitted(self, breaker, fake_clock):
        fail(breaker, 3)
        fake_clock.advance(30)

        assert breaker.allow_request() is True
        assert breaker.allow_request() is False
        with pytest.raises(ServiceOverloaded) as exc_info:
            breaker.check()
        assert exc_info.value.reason == "circuit_half_open"

    def test_probe_success_closes(self, breaker, fake_clock):
        fail(breaker, 3)
        fake_clock.advance(30)
        breaker.check()

        breaker.record_success(0.1)

        snapshot = breaker.snapshot()
        assert snapshot.state == CircuitState.CLOSED
        assert snapshot.call_count == 0
        assert breaker.allow_request() is True

    def test_probe_failure_reopens(self, breaker, fake_clock):
        fail(breaker, 3)
        fake_clock.advance(30)
        breaker.check()

        fail(breaker, 1)

        assert breaker.state == CircuitState.OPEN
        assert breaker.retry_after() == pytest.approx(30.0)

    def test_released_probe_can_be_taken_again(self, breaker, fake_clock):
        fail(breaker, 3)
        fake_clock.advance(30)
        assert breaker.allow_request() is True

        breaker.release_probe()

        assert breaker.allow_request() is True

    def test_check_reports_probe_holder(self, breaker, fake_clock):
        assert breaker.check() is False

        fail(breaker, 3)
        fake_clock.advance(30)

        assert breaker.check() is True

    def test_rejections_count_as_load_shed(self, breaker, fake_clock):
        fail(breaker, 3)
        open_before = shed_count("circuit_open")
        with pytest.raises(ServiceOverloaded):
            breaker.check()
        assert shed_count("circuit_open") == open_before + 1

        fake_clock.advance(30)
        breaker.check()
        half_open_before = shed_count("circuit_half_open")
        with pytest.raises(ServiceOverloaded):
            breaker.check()
        assert shed_count("circuit_half_open") == half_open_before + 1


class TestRejectIfOpen:
    def test_noop_while_closed(self, breaker):
        breaker.reject_if_open()

    def test_raises_and_counts_while_open(self, breaker, fake_clock):
        fail(breaker, 3)
        fake_clock.advance(10)
        before = shed_count("circuit_open")

        with pytest.raises(ServiceOverloaded) as exc_info:
            breaker.reject_if_open()

        assert exc_info.value.reason == "circuit_open"
        assert exc_info.value.retry_after == pytest.approx(20.0)
        assert shed_count("circuit_open") == before + 1

    def test_half_open_does_not_take_probe(self, breaker, fake_clock):
        fail(breaker, 3)
        fake_clock.advance(30)

        breaker.reject_if_open()

        assert breaker.check() is True


def test_reset(breaker):
    fail(breaker, 3)

    breaker.reset()

    snapshot = breaker.snapshot()
    assert snapshot.state == CircuitState.CLOSED
    assert snapshot.call_count == 0
    assert snapshot.last_failure_at is None


def test_from_settings(test_settings):
    breaker = CircuitBreaker.from_settings(test_settings)

    assert breaker.minimum_calls == test_settings.CIRCUIT_MINIMUM_CALLS
    assert breaker.failure_rate_threshold == test_settings.CIRCUIT_FAILURE_RATE_THRESHOLD
    assert breaker.cooldown_seconds == test_settings.CIRCUIT_COOLDOWN_SECONDS


@pytest.mark.parametrize(
    "kwargs",
    [
        {"failure_rate_threshold": 0.0},
        {"failure_rate_threshold": 1.5},
        {"minimum_calls": 0},
        {"window_seconds": 0},
    ],
)
def test_invalid_parameters(kwargs):
    with pytest.raises(ValueError):
        CircuitBreaker(**kwargs)
