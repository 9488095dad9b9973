# ambient_weather_client/resilience.py
"""
Building blocks of the per-request resilience policy chain.

IntervalRateLimiter:
    Spaces outbound requests at least `interval_seconds` apart. Early callers
    suspend on asyncio.sleep, they never fail.

CircuitBreaker:
    Fails fast for a fixed cooldown after repeated failures of one kind:
        CLOSED    -> calls pass through; handled failures are counted.
        OPEN      -> calls raise CircuitOpenError without running.
        HALF_OPEN -> after the cooldown one probe call is admitted. Success
                     closes the circuit, failure re-opens it for another
                     full cooldown.

decorrelated_jitter_backoff:
    Retry delay schedule with jittered exponential growth. Randomizing each
    delay inside a growing range keeps many clients from retrying in step.
    The client turns the schedule into a tenacity wait strategy.

All state is per instance; nothing here is process-global.
"""

import asyncio
import logging
import math
import random
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Final

from tenacity import RetryCallState

__all__: list[str] = [
    'CircuitBreaker',
    'CircuitOpenError',
    'CircuitState',
    'IntervalRateLimiter',
    'decorrelated_jitter_backoff',
    'wait_from_schedule',
]

logger: logging.Logger = logging.getLogger(__name__)

# Decorrelated jitter shape constants. The scaling factor brings the median
# of the first delay to the requested median.
_JITTER_P_FACTOR: Final[float] = 4.0
_JITTER_RP_SCALING_FACTOR: Final[float] = 1 / 1.4


# =============================================================================
# Rate Limiter
# =============================================================================


class IntervalRateLimiter:
    """
    Interval gate allowing at most one acquisition per `interval_seconds`.

    Acquisitions are serialized with an asyncio.Lock, so concurrent callers
    are released one interval apart in arrival order. Cancelling a waiting
    caller propagates CancelledError and does not consume a slot.

    Example:
        >>> limiter = IntervalRateLimiter(interval_seconds=1.5)
        >>> await limiter.acquire()   # immediate
        >>> await limiter.acquire()   # suspends ~1.5 s
    """

    def __init__(
        self,
        interval_seconds: float = 1.5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval_seconds < 0:
            raise ValueError(
                f'interval_seconds must be non-negative, got: {interval_seconds}'
            )

        self._interval_seconds: float = interval_seconds
        self._clock: Callable[[], float] = clock
        self._lock: asyncio.Lock = asyncio.Lock()
        self._next_slot: float | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    async def acquire(self) -> None:
        """Suspend until the next slot opens, then claim it."""
        async with self._lock:
            if self._next_slot is not None:
                wait_seconds: float = self._next_slot - self._clock()
                if wait_seconds > 0:
                    logger.debug('Rate limiter waiting %.3fs for next slot', wait_seconds)
                    await asyncio.sleep(wait_seconds)

            self._next_slot = self._clock() + self._interval_seconds


# =============================================================================
# Circuit Breaker
# =============================================================================


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = 'closed'
    OPEN = 'open'
    HALF_OPEN = 'half_open'


class CircuitOpenError(Exception):
    """
    Raised instead of running an operation while a circuit is open.

    Attributes:
        breaker_name: Name of the breaker that rejected the call.
        retry_after_seconds: Time left until the breaker admits a probe.
    """

    def __init__(self, breaker_name: str, retry_after_seconds: float) -> None:
        super().__init__(
            f'Circuit {breaker_name!r} is open; '
            f'calls rejected for another {retry_after_seconds:.1f}s'
        )
        self.breaker_name: str = breaker_name
        self.retry_after_seconds: float = retry_after_seconds


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker for async operations.

    Only exceptions listed in `handled_exceptions` count as failures. A
    success, or any other exception, resets the consecutive count. A
    CircuitOpenError raised by a nested breaker is neutral: it neither
    counts nor resets.

    Args:
        name: Label used in logs and in CircuitOpenError.
        failure_threshold: Consecutive handled failures that open the circuit.
        break_duration_seconds: How long the circuit stays open.
        handled_exceptions: Exception types counted as failures.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int,
        break_duration_seconds: float,
        handled_exceptions: tuple[type[BaseException], ...],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError(
                f'failure_threshold must be at least 1, got: {failure_threshold}'
            )

        self.name: str = name
        self._failure_threshold: int = failure_threshold
        self._break_duration_seconds: float = break_duration_seconds
        self._handled_exceptions: tuple[type[BaseException], ...] = handled_exceptions
        self._clock: Callable[[], float] = clock

        self._state: CircuitState = CircuitState.CLOSED
        self._consecutive_failures: int = 0
        self._opened_at: float | None = None
        self._probe_in_flight: bool = False

    @property
    def state(self) -> CircuitState:
        """Current state; an open circuit past its cooldown reports HALF_OPEN."""
        if self._state is CircuitState.OPEN and self._cooldown_remaining() <= 0:
            return CircuitState.HALF_OPEN
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    async def call[ResultT](
        self,
        operation: Callable[..., Awaitable[ResultT]],
        *args: object,
    ) -> ResultT:
        """
        Run `operation(*args)` under breaker protection.

        Raises:
            CircuitOpenError: If the circuit is open, or half-open with the
                probe already in flight. The operation is not run.
            Exception: Whatever the operation raises, unchanged.
        """
        is_probe: bool = self._admit()

        try:
            result: ResultT = await operation(*args)
        except CircuitOpenError:
            raise
        except self._handled_exceptions:
            self._record_failure(is_probe)
            raise
        except Exception:
            self._record_success(is_probe)
            raise
        else:
            self._record_success(is_probe)
            return result
        finally:
            if is_probe:
                self._probe_in_flight = False

    def reset(self) -> None:
        """Force the circuit closed and clear the failure count."""
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = None
        self._probe_in_flight = False

    # -------------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------------

    def _admit(self) -> bool:
        """Decide whether a call may run. Returns True when it is the probe."""
        if self._state is CircuitState.CLOSED:
            return False

        remaining: float = self._cooldown_remaining()
        if self._state is CircuitState.OPEN and remaining > 0:
            raise CircuitOpenError(self.name, remaining)

        if self._probe_in_flight:
            raise CircuitOpenError(self.name, 0.0)

        if self._state is CircuitState.OPEN:
            self._state = CircuitState.HALF_OPEN
            logger.info('Circuit %r half-open, admitting probe call', self.name)

        self._probe_in_flight = True
        return True

    def _record_success(self, is_probe: bool) -> None:
        self._consecutive_failures = 0
        if is_probe:
            self._state = CircuitState.CLOSED
            self._opened_at = None
            logger.info('Circuit %r reset to closed', self.name)

    def _record_failure(self, is_probe: bool) -> None:
        self._consecutive_failures += 1

        if is_probe or self._consecutive_failures >= self._failure_threshold:
            self._state = CircuitState.OPEN
            self._opened_at = self._clock()
            logger.warning(
                'Circuit %r opened after %d consecutive failure(s); '
                'breaking for %.1fs',
                self.name,
                self._consecutive_failures,
                self._break_duration_seconds,
            )

    def _cooldown_remaining(self) -> float:
        if self._opened_at is None:
            return 0.0
        return self._opened_at + self._break_duration_seconds - self._clock()


# =============================================================================
# Backoff Schedule
# =============================================================================


def decorrelated_jitter_backoff(
    median_first_retry_delay: float,
    retry_count: int,
    max_delay: float | None = None,
    rng: random.Random | None = None,
) -> list[float]:
    """
    Generate a decorrelated-jitter retry delay schedule.

    Each delay is the increment of f(t) = 2**t * tanh(sqrt(4 * t)) between
    consecutive jittered points t = i + U(0, 1), scaled so the median first
    delay is `median_first_retry_delay`. Delays grow roughly exponentially
    while staying randomly spread.

    Args:
        median_first_retry_delay: Median of the first delay, in seconds.
        retry_count: Number of delays to generate.
        max_delay: Upper bound for each delay. None means uncapped.
        rng: Random source, injectable for deterministic tests.

    Returns:
        `retry_count` non-negative delays in seconds.

    Raises:
        ValueError: If the median is negative or retry_count is negative.
    """
    if median_first_retry_delay < 0:
        raise ValueError(
            f'median_first_retry_delay must be non-negative, got: {median_first_retry_delay}'
        )
    if retry_count < 0:
        raise ValueError(f'retry_count must be non-negative, got: {retry_count}')

    random_source: random.Random = rng if rng is not None else random.Random()  # noqa: S311
    scale: float = median_first_retry_delay * _JITTER_RP_SCALING_FACTOR

    delays: list[float] = []
    previous: float = 0.0

    for attempt in range(retry_count):
        jittered_point: float = attempt + random_source.random()
        current: float = 2**jittered_point * math.tanh(
            math.sqrt(_JITTER_P_FACTOR * jittered_point)
        )

        delay: float = (current - previous) * scale
        if max_delay is not None:
            delay = min(delay, max_delay)

        delays.append(delay)
        previous = current

    return delays


def wait_from_schedule(delays: list[float]) -> Callable[[RetryCallState], float]:
    """
    Wrap a precomputed delay schedule as a tenacity wait strategy.

    Attempt N waits `delays[N - 1]`; attempts past the end of the schedule
    reuse its last delay.
    """

    def _wait(retry_state: RetryCallState) -> float:
        if not delays:
            return 0.0
        index: int = min(retry_state.attempt_number, len(delays)) - 1
        return delays[index]

    return _wait
