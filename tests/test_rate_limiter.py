"""Tests for the token-bucket rate limiter (europarl_mcp/api/rate_limiter.py)."""

from __future__ import annotations

import asyncio
import threading

import pytest

from europarl_mcp.api import rate_limiter as rl_module
from europarl_mcp.api.rate_limiter import (
    Interval,
    TokenBucketRateLimiter,
    create_standard_rate_limiter,
)
from europarl_mcp.utils.errors import ConfigurationError, RateLimitExceeded


# ── Construction ─────────────────────────────────────────


@pytest.mark.unit
@pytest.mark.parametrize("capacity", [100, 1, 0.5, 7.25])
def test_fresh_bucket_is_full(make_limiter, capacity):
    rl = make_limiter(capacity=capacity)
    assert rl.available_tokens() == capacity


@pytest.mark.unit
@pytest.mark.parametrize(
    "kwargs",
    [
        {"capacity": 0},
        {"capacity": -5},
        {"capacity": 100, "interval": "fortnight"},
        {"capacity": 100, "initial_tokens": 150},
        {"capacity": 100, "initial_tokens": -1},
        {"capacity": float("nan")},
        {"capacity": float("inf")},
        {"capacity": True},
        {"capacity": 10**400},
        {"capacity": 100, "initial_tokens": 10**400},
    ],
)
def test_invalid_construction_raises(kwargs):
    with pytest.raises(ConfigurationError) as exc_info:
        TokenBucketRateLimiter(**kwargs)
    assert exc_info.value.code == "CONFIG_ERROR"


@pytest.mark.unit
@pytest.mark.parametrize(
    "interval, ms",
    [("second", 1_000), ("minute", 60_000), ("hour", 3_600_000), ("MINUTE", 60_000)],
)
def test_interval_mapping(interval, ms):
    rl = TokenBucketRateLimiter(capacity=1, interval=interval)
    assert rl.refill_interval_ms == ms


@pytest.mark.unit
def test_initial_tokens_respected(make_limiter):
    rl = make_limiter(capacity=10, initial_tokens=3)
    assert rl.available_tokens() == 3
    assert rl.capacity == 10


@pytest.mark.unit
def test_standard_limiter():
    rl = create_standard_rate_limiter()
    assert rl.capacity == 100
    assert rl.interval is Interval.MINUTE
    assert rl.available_tokens() == 100


# ── try_acquire ──────────────────────────────────────────


@pytest.mark.unit
def test_try_acquire_decrements_exactly(make_limiter):
    rl = make_limiter(capacity=10)
    assert rl.try_acquire(3) is True
    assert rl.available_tokens() == 7
    assert rl.try_acquire(2.5) is True
    assert rl.available_tokens() == pytest.approx(4.5)


@pytest.mark.unit
def test_try_acquire_shortfall_leaves_state(make_limiter):
    rl = make_limiter(capacity=10, initial_tokens=2)
    assert rl.try_acquire(3) is False
    assert rl.available_tokens() == 2


@pytest.mark.unit
def test_tokens_stay_within_bounds(make_limiter, clock):
    rl = make_limiter(capacity=5)
    for _ in range(20):
        rl.try_acquire(2)
        assert 0 <= rl.available_tokens() <= 5
        clock.advance_ms(150)
        assert 0 <= rl.available_tokens() <= 5


@pytest.mark.unit
@pytest.mark.parametrize("count", [0, -1, float("nan"), float("inf"), "1"])
def test_invalid_count_rejected(make_limiter, count):
    rl = make_limiter()
    with pytest.raises(ValueError):
        rl.try_acquire(count)
    with pytest.raises(ValueError):
        rl.acquire(count)


@pytest.mark.unit
def test_huge_int_count_is_a_shortfall(make_limiter):
    rl = make_limiter(capacity=10)
    assert rl.try_acquire(10**400) is False
    with pytest.raises(RateLimitExceeded) as exc_info:
        rl.acquire(10**400)
    assert exc_info.value.requested == 10**400
    assert exc_info.value.retry_after_seconds > 10**390
    assert rl.available_tokens() == 10


# ── Refill ───────────────────────────────────────────────


@pytest.mark.unit
@pytest.mark.parametrize("start", [0, 3, 9.5])
def test_full_interval_refills_to_capacity(make_limiter, clock, start):
    rl = make_limiter(capacity=10, interval="second", initial_tokens=start)
    clock.advance_ms(1000)
    assert rl.available_tokens() == 10


@pytest.mark.unit
def test_half_interval_from_empty(make_limiter, clock):
    rl = make_limiter(capacity=10, interval="second", initial_tokens=0)
    clock.advance_ms(500)
    assert rl.available_tokens() == pytest.approx(5)


@pytest.mark.unit
def test_refill_is_continuous_not_stepped(make_limiter, clock):
    rl = make_limiter(capacity=60, interval="minute", initial_tokens=0)
    clock.advance_ms(250)
    assert rl.available_tokens() == pytest.approx(0.25)


@pytest.mark.unit
def test_refill_never_exceeds_capacity(make_limiter, clock):
    rl = make_limiter(capacity=10, interval="second")
    clock.advance(3600)
    assert rl.available_tokens() == 10


@pytest.mark.unit
def test_clock_going_backwards_is_ignored(make_limiter, clock):
    rl = make_limiter(capacity=10, interval="second", initial_tokens=4)
    clock.advance(-5)
    assert rl.available_tokens() == 4
    # last_refill was not moved back, so time has to catch up first
    clock.advance(5)
    assert rl.available_tokens() == 4
    clock.advance_ms(100)
    assert rl.available_tokens() == pytest.approx(5)


@pytest.mark.unit
def test_minute_bucket_scenario(make_limiter, clock):
    rl = make_limiter(capacity=100, interval="minute")
    assert rl.try_acquire(100) is True
    assert rl.available_tokens() == 0
    assert rl.try_acquire(1) is False
    clock.advance_ms(600)
    assert rl.available_tokens() == pytest.approx(1)


# ── acquire ──────────────────────────────────────────────


@pytest.mark.unit
def test_acquire_succeeds_when_tokens_available(make_limiter):
    rl = make_limiter(capacity=10)
    rl.acquire(4)
    assert rl.available_tokens() == 6


@pytest.mark.unit
def test_acquire_shortfall_reports_retry_after(make_limiter):
    rl = make_limiter(capacity=10, interval="second", initial_tokens=0)
    with pytest.raises(RateLimitExceeded) as exc_info:
        rl.acquire(5)
    err = exc_info.value
    assert err.retry_after_seconds == 1
    assert err.available == 0
    assert err.requested == 5
    assert err.status_code == 429
    assert err.details == {"available": 0, "requested": 5, "retryAfter": 1}


@pytest.mark.unit
def test_acquire_error_reports_pre_call_balance(make_limiter, clock):
    rl = make_limiter(capacity=10, interval="second", initial_tokens=1)
    clock.advance_ms(200)
    before = rl.available_tokens()
    with pytest.raises(RateLimitExceeded) as exc_info:
        rl.acquire(8)
    assert exc_info.value.available == pytest.approx(before)
    assert exc_info.value.retry_after_seconds >= 0
    # a rejected acquire does not consume anything
    assert rl.available_tokens() == pytest.approx(before)


@pytest.mark.unit
def test_acquire_more_than_capacity_waits_longer(make_limiter):
    rl = make_limiter(capacity=10, interval="minute", initial_tokens=0)
    with pytest.raises(RateLimitExceeded) as exc_info:
        rl.acquire(25)
    assert exc_info.value.retry_after_seconds == 150


# ── reset & status ───────────────────────────────────────


@pytest.mark.unit
def test_reset_restores_capacity(make_limiter, clock):
    rl = make_limiter(capacity=10, interval="hour", initial_tokens=0)
    clock.advance(12)
    rl.reset()
    assert rl.available_tokens() == 10
    rl.try_acquire(10)
    rl.reset()
    assert rl.available_tokens() == 10


@pytest.mark.unit
def test_status_floors_and_reports_utilisation(make_limiter):
    rl = make_limiter(capacity=100, interval="hour")
    rl.try_acquire(25.5)
    status = rl.status()
    assert status.available_tokens == 74
    assert status.max_tokens == 100
    assert status.utilization_percent == 26


# ── wait_for ─────────────────────────────────────────────


@pytest.fixture
def fake_sleep(monkeypatch, clock):
    """Replace asyncio.sleep in the limiter with one that advances the clock."""
    slept: list[float] = []

    async def _sleep(seconds: float) -> None:
        slept.append(seconds)
        clock.advance(seconds)

    monkeypatch.setattr(rl_module.asyncio, "sleep", _sleep)
    return slept


@pytest.mark.unit
@pytest.mark.asyncio
async def test_wait_for_returns_immediately_when_available(make_limiter, fake_sleep):
    rl = make_limiter(capacity=5)
    await rl.wait_for(2)
    assert fake_sleep == []
    assert rl.available_tokens() == 3


@pytest.mark.unit
@pytest.mark.asyncio
async def test_wait_for_sleeps_until_refilled(make_limiter, fake_sleep):
    rl = make_limiter(capacity=10, interval="second", initial_tokens=0)
    await rl.wait_for(5)
    assert fake_sleep[0] == pytest.approx(0.5)
    assert rl.available_tokens() == pytest.approx(0)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_wait_for_rechecks_after_wakeup(make_limiter, clock, monkeypatch):
    rl = make_limiter(capacity=10, interval="second", initial_tokens=0)
    calls = 0

    async def _sleep(seconds: float) -> None:
        nonlocal calls
        calls += 1
        clock.advance(seconds)
        if calls == 1:
            # another consumer drains the bucket while we sleep
            assert rl.try_acquire(rl.available_tokens()) is True

    monkeypatch.setattr(rl_module.asyncio, "sleep", _sleep)
    await rl.wait_for(2)
    assert calls >= 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_wait_for_rejects_impossible_count(make_limiter):
    rl = make_limiter(capacity=3)
    with pytest.raises(ValueError):
        await rl.wait_for(4)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_concurrent_wait_for(make_limiter, fake_sleep):
    """Several coroutines share one bucket without overdrawing it."""
    rl = make_limiter(capacity=2, interval="second", initial_tokens=0)
    done: list[int] = []

    async def worker(i: int) -> None:
        await rl.wait_for(1)
        done.append(i)

    await asyncio.gather(*(worker(i) for i in range(5)))
    assert sorted(done) == list(range(5))
    assert 0 <= rl.available_tokens() <= 2


# ── Threads ──────────────────────────────────────────────


@pytest.mark.unit
def test_threads_never_overdraw(make_limiter):
    rl = make_limiter(capacity=50, interval="hour")
    successes: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(20):
            ok = rl.try_acquire(1)
            with lock:
                successes.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert successes.count(True) == 50
    assert rl.available_tokens() == 0
