"""
Tests for ambient_weather_client.resilience module.

Tests the rate limiter, circuit breaker state machine and the jittered
backoff schedule in isolation from HTTP.
"""

import asyncio
import random
import statistics
import time
from types import SimpleNamespace

import pytest
from conftest import FakeClock

from ambient_weather_client.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    IntervalRateLimiter,
    decorrelated_jitter_backoff,
    wait_from_schedule,
)


class BoomError(Exception):
    """Failure type the test breakers count."""


class OtherError(Exception):
    """Failure type the test breakers ignore."""


async def _succeed() -> str:
    return 'ok'


async def _boom() -> str:
    raise BoomError('boom')


async def _other() -> str:
    raise OtherError('other')


def _make_breaker(clock: FakeClock, threshold: int = 3) -> CircuitBreaker:
    return CircuitBreaker(
        name='test',
        failure_threshold=threshold,
        break_duration_seconds=60.0,
        handled_exceptions=(BoomError,),
        clock=clock,
    )


async def _fail_times(breaker: CircuitBreaker, times: int) -> None:
    for _ in range(times):
        with pytest.raises(BoomError):
            await breaker.call(_boom)


# =============================================================================
# IntervalRateLimiter
# =============================================================================


class TestIntervalRateLimiter:
    """Test request spacing."""

    async def test_first_acquire_is_immediate(self) -> None:
        """Should not wait for the first slot."""
        limiter = IntervalRateLimiter(interval_seconds=10.0)

        await asyncio.wait_for(limiter.acquire(), timeout=1.0)

    async def test_acquisitions_are_spaced(self) -> None:
        """Should space consecutive acquisitions by the interval."""
        limiter = IntervalRateLimiter(interval_seconds=0.05)
        stamps: list[float] = []

        for _ in range(3):
            await limiter.acquire()
            stamps.append(time.monotonic())

        gaps: list[float] = [b - a for a, b in zip(stamps, stamps[1:], strict=False)]
        assert all(gap >= 0.045 for gap in gaps)  # noqa: PLR2004

    async def test_concurrent_callers_are_serialized(self) -> None:
        """Should release concurrent callers one interval apart."""
        limiter = IntervalRateLimiter(interval_seconds=0.05)
        stamps: list[float] = []

        async def _take() -> None:
            await limiter.acquire()
            stamps.append(time.monotonic())

        await asyncio.gather(*(_take() for _ in range(3)))

        stamps.sort()
        assert stamps[2] - stamps[0] >= 0.09  # noqa: PLR2004

    async def test_zero_interval_never_waits(self) -> None:
        """Should pass every caller through immediately."""
        limiter = IntervalRateLimiter(interval_seconds=0.0)

        for _ in range(5):
            await asyncio.wait_for(limiter.acquire(), timeout=0.5)

    async def test_cancelled_waiter_does_not_take_slot(self) -> None:
        """Should propagate cancellation and leave the slot free."""
        clock = FakeClock()
        limiter = IntervalRateLimiter(interval_seconds=10.0, clock=clock)
        await limiter.acquire()

        waiter: asyncio.Task[None] = asyncio.create_task(limiter.acquire())
        await asyncio.sleep(0.01)
        waiter.cancel()

        with pytest.raises(asyncio.CancelledError):
            await waiter

        clock.advance(10.0)
        await asyncio.wait_for(limiter.acquire(), timeout=0.5)

    def test_negative_interval_rejected(self) -> None:
        """Should reject a negative interval."""
        with pytest.raises(ValueError, match='non-negative'):
            IntervalRateLimiter(interval_seconds=-1.0)


# =============================================================================
# CircuitBreaker
# =============================================================================


class TestCircuitBreakerClosed:
    """Test failure counting while closed."""

    async def test_passes_results_through(self) -> None:
        """Should return the operation's result."""
        breaker = _make_breaker(FakeClock())

        assert await breaker.call(_succeed) == 'ok'
        assert breaker.state is CircuitState.CLOSED

    async def test_opens_at_threshold(self) -> None:
        """Should open after the configured number of handled failures."""
        breaker = _make_breaker(FakeClock(), threshold=3)

        await _fail_times(breaker, 2)
        assert breaker.state is CircuitState.CLOSED
        assert breaker.consecutive_failures == 2  # noqa: PLR2004

        await _fail_times(breaker, 1)
        assert breaker.state is CircuitState.OPEN

    async def test_success_resets_count(self) -> None:
        """Should reset the consecutive count on success."""
        breaker = _make_breaker(FakeClock(), threshold=3)

        await _fail_times(breaker, 2)
        await breaker.call(_succeed)
        await _fail_times(breaker, 2)

        assert breaker.state is CircuitState.CLOSED
        assert breaker.consecutive_failures == 2  # noqa: PLR2004

    async def test_unhandled_exception_resets_count(self) -> None:
        """Should propagate unhandled exceptions and reset the count."""
        breaker = _make_breaker(FakeClock(), threshold=3)

        await _fail_times(breaker, 2)
        with pytest.raises(OtherError):
            await breaker.call(_other)

        assert breaker.consecutive_failures == 0

    async def test_nested_open_circuit_is_neutral(self) -> None:
        """Should neither count nor reset on an inner CircuitOpenError."""
        breaker = _make_breaker(FakeClock(), threshold=3)

        async def _inner_open() -> str:
            raise CircuitOpenError('inner', 5.0)

        await _fail_times(breaker, 2)
        with pytest.raises(CircuitOpenError):
            await breaker.call(_inner_open)

        assert breaker.consecutive_failures == 2  # noqa: PLR2004

    def test_threshold_must_be_positive(self) -> None:
        """Should reject a threshold below one."""
        with pytest.raises(ValueError, match='at least 1'):
            _make_breaker(FakeClock(), threshold=0)


class TestCircuitBreakerOpen:
    """Test fast failure and recovery."""

    async def test_open_circuit_does_not_run_operation(self) -> None:
        """Should reject calls without invoking the operation."""
        breaker = _make_breaker(FakeClock(), threshold=1)
        await _fail_times(breaker, 1)
        calls: list[int] = []

        async def _tracked() -> str:
            calls.append(1)
            return 'ok'

        with pytest.raises(CircuitOpenError, match='is open') as exc_info:
            await breaker.call(_tracked)

        assert calls == []
        assert exc_info.value.breaker_name == 'test'
        assert exc_info.value.retry_after_seconds == pytest.approx(60.0)

    async def test_reports_half_open_after_cooldown(self) -> None:
        """Should report HALF_OPEN once the cooldown has elapsed."""
        clock = FakeClock()
        breaker = _make_breaker(clock, threshold=1)
        await _fail_times(breaker, 1)

        clock.advance(59.0)
        assert breaker.state is CircuitState.OPEN

        clock.advance(1.0)
        assert breaker.state is CircuitState.HALF_OPEN

    async def test_probe_success_closes(self) -> None:
        """Should close the circuit when the probe succeeds."""
        clock = FakeClock()
        breaker = _make_breaker(clock, threshold=1)
        await _fail_times(breaker, 1)
        clock.advance(60.0)

        assert await breaker.call(_succeed) == 'ok'
        assert breaker.state is CircuitState.CLOSED
        assert breaker.consecutive_failures == 0

    async def test_probe_failure_reopens_for_full_duration(self) -> None:
        """Should re-open for a full cooldown when the probe fails."""
        clock = FakeClock()
        breaker = _make_breaker(clock, threshold=3)
        await _fail_times(breaker, 3)
        clock.advance(60.0)

        await _fail_times(breaker, 1)
        assert breaker.state is CircuitState.OPEN

        clock.advance(59.0)
        with pytest.raises(CircuitOpenError):
            await breaker.call(_succeed)

        clock.advance(1.0)
        assert await breaker.call(_succeed) == 'ok'

    async def test_only_one_probe_admitted(self) -> None:
        """Should reject other calls while the probe is in flight."""
        clock = FakeClock()
        breaker = _make_breaker(clock, threshold=1)
        await _fail_times(breaker, 1)
        clock.advance(60.0)
        gate = asyncio.Event()

        async def _slow_probe() -> str:
            await gate.wait()
            return 'probe'

        probe: asyncio.Task[str] = asyncio.create_task(breaker.call(_slow_probe))
        await asyncio.sleep(0)

        with pytest.raises(CircuitOpenError):
            await breaker.call(_succeed)

        gate.set()
        assert await probe == 'probe'
        assert breaker.state is CircuitState.CLOSED

    async def test_cancelled_probe_frees_slot(self) -> None:
        """Should admit a new probe after the previous one was cancelled."""
        clock = FakeClock()
        breaker = _make_breaker(clock, threshold=1)
        await _fail_times(breaker, 1)
        clock.advance(60.0)

        probe: asyncio.Task[None] = asyncio.create_task(
            breaker.call(asyncio.sleep, 10)
        )
        await asyncio.sleep(0)
        probe.cancel()
        with pytest.raises(asyncio.CancelledError):
            await probe

        assert await breaker.call(_succeed) == 'ok'

    async def test_reset_closes(self) -> None:
        """Should close the circuit on manual reset."""
        breaker = _make_breaker(FakeClock(), threshold=1)
        await _fail_times(breaker, 1)

        breaker.reset()

        assert breaker.state is CircuitState.CLOSED
        assert await breaker.call(_succeed) == 'ok'


# =============================================================================
# Backoff
# =============================================================================


class TestDecorrelatedJitterBackoff:
    """Test the retry delay schedule."""

    def test_length_matches_retry_count(self) -> None:
        """Should produce one delay per retry."""
        assert len(decorrelated_jitter_backoff(1.0, 6)) == 6  # noqa: PLR2004
        assert decorrelated_jitter_backoff(1.0, 0) == []

    def test_delays_are_positive(self) -> None:
        """Should never produce a negative delay."""
        delays: list[float] = decorrelated_jitter_backoff(1.0, 10)

        assert all(delay >= 0 for delay in delays)

    def test_delays_capped(self) -> None:
        """Should clamp every delay to max_delay."""
        delays: list[float] = decorrelated_jitter_backoff(1.0, 12, max_delay=5.0)

        assert max(delays) <= 5.0  # noqa: PLR2004

    def test_delays_grow(self) -> None:
        """Should grow roughly exponentially without a cap."""
        delays: list[float] = decorrelated_jitter_backoff(
            1.0, 8, rng=random.Random(7)
        )

        # The schedule telescopes to f(t_last), and t_last >= 7
        assert sum(delays) > 50.0  # noqa: PLR2004

    def test_seeded_schedule_is_deterministic(self) -> None:
        """Should repeat the schedule for the same seed."""
        first: list[float] = decorrelated_jitter_backoff(1.0, 6, rng=random.Random(42))
        second: list[float] = decorrelated_jitter_backoff(1.0, 6, rng=random.Random(42))

        assert first == second

    def test_first_delay_median_near_requested(self) -> None:
        """Should centre the first delay around the requested median."""
        rng = random.Random(1234)
        first_delays: list[float] = [
            decorrelated_jitter_backoff(1.0, 1, rng=rng)[0] for _ in range(2001)
        ]

        assert 0.7 <= statistics.median(first_delays) <= 1.1  # noqa: PLR2004

    def test_zero_median_gives_zero_delays(self) -> None:
        """Should produce no waiting at all for a zero median."""
        assert decorrelated_jitter_backoff(0.0, 4) == [0.0, 0.0, 0.0, 0.0]

    def test_negative_arguments_rejected(self) -> None:
        """Should reject a negative median or retry count."""
        with pytest.raises(ValueError, match='median_first_retry_delay'):
            decorrelated_jitter_backoff(-1.0, 3)
        with pytest.raises(ValueError, match='retry_count'):
            decorrelated_jitter_backoff(1.0, -1)


class TestWaitFromSchedule:
    """Test the tenacity wait adapter."""

    def test_attempt_maps_to_schedule_index(self) -> None:
        """Should wait delays[N - 1] after attempt N."""
        wait = wait_from_schedule([0.5, 1.0, 2.0])

        assert wait(SimpleNamespace(attempt_number=1)) == 0.5  # type: ignore[arg-type]  # noqa: PLR2004
        assert wait(SimpleNamespace(attempt_number=3)) == 2.0  # type: ignore[arg-type]  # noqa: PLR2004

    def test_attempts_past_end_reuse_last_delay(self) -> None:
        """Should keep using the last delay once the schedule runs out."""
        wait = wait_from_schedule([0.5, 1.0])

        assert wait(SimpleNamespace(attempt_number=9)) == 1.0  # type: ignore[arg-type]

    def test_empty_schedule_waits_zero(self) -> None:
        """Should not wait when there is no schedule."""
        wait = wait_from_schedule([])

        assert wait(SimpleNamespace(attempt_number=1)) == 0.0  # type: ignore[arg-type]
