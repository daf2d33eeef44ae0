"""Token-bucket rate limiter for outbound EP API calls."""

from __future__ import annotations

import asyncio
import math
import threading
import time
from fractions import Fraction
from enum import StrEnum
from typing import Callable, NamedTuple

from europarl_mcp.utils.errors import ConfigurationError, RateLimitExceeded


class Interval(StrEnum):
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"

    @property
    def milliseconds(self) -> int:
        return _INTERVAL_MS[self]


_INTERVAL_MS = {
    Interval.SECOND: 1_000,
    Interval.MINUTE: 60_000,
    Interval.HOUR: 3_600_000,
}


class RateLimiterStatus(NamedTuple):
    """Point-in-time view of a bucket."""

    available_tokens: int
    max_tokens: float
    utilization_percent: int


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _finite_float(value: object) -> float | None:
    """*value* as a finite float, or None when it cannot be used as one."""
    if not _is_number(value):
        return None
    try:
        converted = float(value)
    except OverflowError:
        return None
    return converted if math.isfinite(converted) else None


class TokenBucketRateLimiter:
    """Token bucket with continuous, lazily computed refill.

    Parameters
    ----------
    capacity : float
        Maximum tokens held, also the amount restored per *interval*.
    interval : Interval | str
        ``"second"``, ``"minute"`` or ``"hour"``.
    initial_tokens : float | None
        Starting balance in ``[0, capacity]``. Defaults to *capacity*.
    clock : callable
        Monotonic clock returning seconds. Defaults to ``time.monotonic``.

    There is no background timer: tokens are brought up to date whenever
    the bucket is queried or charged. The refill-check-decrement sequence
    runs under a lock, so one instance can be shared between threads and
    coroutines.
    """

    def __init__(
        self,
        capacity: float,
        interval: Interval | str = Interval.MINUTE,
        initial_tokens: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        capacity_value = _finite_float(capacity)
        if capacity_value is None or capacity_value <= 0:
            raise ConfigurationError(
                f"Rate limiter capacity must be a positive number, got {capacity!r}",
                {"capacity": capacity},
            )

        try:
            parsed_interval = Interval(str(interval).lower())
        except ValueError:
            raise ConfigurationError(
                f"Invalid interval: {interval!r}. "
                f"Must be one of {[i.value for i in Interval]}",
                {"interval": str(interval)},
            ) from None

        if initial_tokens is None:
            initial_tokens = capacity_value
        elif (
            _finite_float(initial_tokens) is None
            or not 0 <= initial_tokens <= capacity_value
        ):
            raise ConfigurationError(
                f"initial_tokens must be between 0 and {capacity}, got {initial_tokens!r}",
                {"initial_tokens": initial_tokens, "capacity": capacity},
            )

        self._capacity = capacity_value
        self.interval = parsed_interval
        self._refill_interval_ms = parsed_interval.milliseconds
        self._clock = clock

        self._tokens: float = float(initial_tokens)
        self._last_refill: float = clock()
        self._lock = threading.Lock()

    # ── public ───────────────────────────────────────────

    @property
    def capacity(self) -> float:
        return self._capacity

    @property
    def refill_interval_ms(self) -> int:
        return self._refill_interval_ms

    def acquire(self, count: float = 1) -> None:
        """Consume *count* tokens or raise :class:`RateLimitExceeded`.

        Never suspends the caller. On a shortfall the raised error carries
        the current balance and how many seconds until the shortfall will
        have accrued; retrying is the caller's decision.
        """
        _check_count(count)
        with self._lock:
            self._refill()
            if self._tokens >= count:
                self._tokens -= count
                return
            raise RateLimitExceeded(
                available=self._tokens,
                requested=count,
                retry_after_seconds=self._retry_after_seconds(count),
            )

    def try_acquire(self, count: float = 1) -> bool:
        """Consume *count* tokens if available. Returns False otherwise."""
        _check_count(count)
        with self._lock:
            self._refill()
            if self._tokens >= count:
                self._tokens -= count
                return True
            return False

    async def wait_for(self, count: float = 1) -> None:
        """Suspend until *count* tokens can be consumed, then consume them.

        Other tasks may drain the bucket while this one sleeps, so the
        balance is re-checked after every wake-up.
        """
        _check_count(count)
        if count > self._capacity:
            raise ValueError(
                f"Cannot wait for {count} tokens from a bucket of capacity {self._capacity:g}"
            )
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= count:
                    self._tokens -= count
                    return
                wait = self._wait_ms(count) / 1000

            # Sleep WITHOUT holding the lock
            await asyncio.sleep(max(wait, 0.01))

    def available_tokens(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    def status(self) -> RateLimiterStatus:
        with self._lock:
            self._refill()
            available = self._tokens
        used = (self._capacity - available) / self._capacity * 100
        return RateLimiterStatus(
            available_tokens=math.floor(available),
            max_tokens=self._capacity,
            utilization_percent=round(used),
        )

    def reset(self) -> None:
        """Refill the bucket completely and re-anchor the refill clock."""
        with self._lock:
            self._tokens = self._capacity
            self._last_refill = max(self._last_refill, self._clock())

    # ── private ──────────────────────────────────────────

    def _refill(self) -> None:
        now = self._clock()
        elapsed_ms = max(0.0, (now - self._last_refill) * 1000)
        tokens_to_add = elapsed_ms / self._refill_interval_ms * self._capacity
        if tokens_to_add > 0:
            self._tokens = min(self._capacity, self._tokens + tokens_to_add)
            self._last_refill = now

    def _wait_ms(self, count: float) -> float:
        deficit = count - self._tokens
        return deficit / self._capacity * self._refill_interval_ms

    def _retry_after_seconds(self, count: float) -> int:
        try:
            return math.ceil(self._wait_ms(count) / 1000)
        except OverflowError:
            # count is an int beyond float range
            deficit = Fraction(count) - Fraction(self._tokens)
            wait_ms = deficit * self._refill_interval_ms / Fraction(self._capacity)
            return math.ceil(wait_ms / 1000)


def _check_count(count: float) -> None:
    if _is_number(count) and count > 0:
        try:
            if math.isfinite(count):
                return
        except OverflowError:
            # ints too large for a float are still finite counts
            return
    raise ValueError(f"Token count must be a positive number, got {count!r}")


def create_standard_rate_limiter() -> TokenBucketRateLimiter:
    """100 requests per minute, the EP API default."""
    return TokenBucketRateLimiter(capacity=100, interval=Interval.MINUTE)
