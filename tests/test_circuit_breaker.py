"""Tests for CircuitBreaker state transitions and CircuitBreakerRegistry."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from chatrelay.configs.system import (
    PRIMARY_BREAKER_NAME,
    TOOL_BREAKER_NAME,
    CircuitBreakerConfig,
    _default_breakers,
)
from chatrelay.infra.resilience import (
    STATE_CLOSED,
    STATE_HALF_OPEN,
    STATE_OPEN,
    BreakerOpen,
    CircuitBreaker,
    CircuitBreakerRegistry,
)


class _Clock:
    """Manually advanced clock."""

    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class _Op:
    """Awaitable factory that counts invocations and can be told to fail."""

    def __init__(self, fail: bool = False, result: str = "ok") -> None:
        self.fail = fail
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.fail:
            raise RuntimeError("boom")
        return self.result


def _breaker(
    clock: _Clock,
    threshold: int = 3,
    recovery: float = 30,
    trials: int = 2,
) -> CircuitBreaker:
    config = CircuitBreakerConfig(
        failure_threshold=threshold,
        recovery_timeout=timedelta(seconds=recovery),
        half_open_max_calls=trials,
    )
    return CircuitBreaker("test", config, clock=clock)


async def _fail_times(breaker: CircuitBreaker, n: int) -> None:
    op = _Op(fail=True)
    for _ in range(n):
        with pytest.raises(RuntimeError):
            await breaker.execute(op)


async def _open(breaker: CircuitBreaker) -> None:
    await _fail_times(breaker, breaker.config.failure_threshold)
    assert breaker.state == STATE_OPEN


# =========================================================================
# CLOSED
# =========================================================================


class TestClosed:
    @pytest.mark.asyncio
    async def test_success_passes_result_through(self):
        breaker = _breaker(_Clock())
        assert await breaker.execute(_Op(result="hello")) == "hello"
        snap = breaker.snapshot()
        assert snap.state == STATE_CLOSED
        assert snap.success_count == 1
        assert snap.total_calls == 1

    @pytest.mark.asyncio
    async def test_failure_is_reraised_unchanged(self):
        breaker = _breaker(_Clock())

        async def bad() -> None:
            raise ValueError("specific")

        with pytest.raises(ValueError, match="specific"):
            await breaker.execute(bad)
        assert breaker.snapshot().failure_count == 1

    @pytest.mark.asyncio
    async def test_threshold_failures_open_and_next_call_is_rejected(self):
        breaker = _breaker(_Clock(), threshold=3)
        await _fail_times(breaker, 3)
        assert breaker.state == STATE_OPEN

        op = _Op()
        with pytest.raises(BreakerOpen):
            await breaker.execute(op)
        assert op.calls == 0

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self):
        breaker = _breaker(_Clock(), threshold=3)
        await _fail_times(breaker, 2)
        await breaker.execute(_Op())
        await _fail_times(breaker, 2)
        assert breaker.state == STATE_CLOSED
        assert breaker.snapshot().failure_count == 2

    @pytest.mark.asyncio
    async def test_last_failure_and_success_times_use_clock(self):
        clock = _Clock()
        breaker = _breaker(clock)
        await _fail_times(breaker, 1)
        clock.advance(seconds=5)
        await breaker.execute(_Op())
        snap = breaker.snapshot()
        assert snap.last_failure_time == clock.now - timedelta(seconds=5)
        assert snap.last_success_time == clock.now


# =========================================================================
# OPEN
# =========================================================================


class TestOpen:
    @pytest.mark.asyncio
    async def test_rejects_until_recovery_timeout(self):
        clock = _Clock()
        breaker = _breaker(clock, recovery=30)
        await _open(breaker)

        op = _Op()
        clock.advance(seconds=29)
        with pytest.raises(BreakerOpen):
            await breaker.execute(op)
        assert op.calls == 0
        assert breaker.state == STATE_OPEN

    @pytest.mark.asyncio
    async def test_due_call_runs_once_and_enters_half_open(self):
        clock = _Clock()
        breaker = _breaker(clock, recovery=30, trials=2)
        await _open(breaker)

        clock.advance(seconds=30)
        op = _Op()
        assert await breaker.execute(op) == "ok"
        assert op.calls == 1
        assert breaker.state == STATE_HALF_OPEN
        assert breaker.snapshot().half_open_calls == 1

    @pytest.mark.asyncio
    async def test_next_attempt_time_set_only_while_open(self):
        clock = _Clock()
        breaker = _breaker(clock, recovery=30, trials=1)
        assert breaker.snapshot().next_attempt_time is None

        await _open(breaker)
        assert breaker.snapshot().next_attempt_time == clock.now + timedelta(
            seconds=30
        )

        clock.advance(seconds=30)
        await breaker.execute(_Op())
        assert breaker.state == STATE_CLOSED
        assert breaker.snapshot().next_attempt_time is None

    @pytest.mark.asyncio
    async def test_rejections_count_towards_total_calls(self):
        breaker = _breaker(_Clock(), threshold=1)
        await _open(breaker)
        for _ in range(3):
            with pytest.raises(BreakerOpen):
                await breaker.execute(_Op())
        assert breaker.snapshot().total_calls == 4


# =========================================================================
# HALF_OPEN
# =========================================================================


class TestHalfOpen:
    @pytest.mark.asyncio
    async def test_closes_after_max_successful_trials(self):
        clock = _Clock()
        breaker = _breaker(clock, trials=2)
        await _open(breaker)
        clock.advance(seconds=30)

        await breaker.execute(_Op())
        assert breaker.state == STATE_HALF_OPEN
        await breaker.execute(_Op())
        assert breaker.state == STATE_CLOSED
        assert breaker.snapshot().failure_count == 0

    @pytest.mark.asyncio
    async def test_single_failure_reopens_despite_prior_successes(self):
        clock = _Clock()
        breaker = _breaker(clock, recovery=30, trials=3)
        await _open(breaker)
        clock.advance(seconds=30)

        await breaker.execute(_Op())
        await breaker.execute(_Op())
        await _fail_times(breaker, 1)

        snap = breaker.snapshot()
        assert snap.state == STATE_OPEN
        assert snap.next_attempt_time == clock.now + timedelta(seconds=30)

    @pytest.mark.asyncio
    async def test_half_open_calls_reset_on_each_entry(self):
        clock = _Clock()
        breaker = _breaker(clock, trials=3)
        await _open(breaker)
        clock.advance(seconds=30)
        await breaker.execute(_Op())
        await _fail_times(breaker, 1)

        clock.advance(seconds=30)
        await breaker.execute(_Op())
        assert breaker.state == STATE_HALF_OPEN
        assert breaker.snapshot().half_open_calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_trials_are_capped(self):
        clock = _Clock()
        breaker = _breaker(clock, trials=1)
        await _open(breaker)
        clock.advance(seconds=30)

        release = asyncio.Event()

        async def slow() -> str:
            await release.wait()
            return "slow"

        trial = asyncio.create_task(breaker.execute(slow))
        await asyncio.sleep(0)
        assert breaker.state == STATE_HALF_OPEN

        extra = _Op()
        with pytest.raises(BreakerOpen):
            await breaker.execute(extra)
        assert extra.calls == 0

        release.set()
        assert await trial == "slow"
        assert breaker.state == STATE_CLOSED


# =========================================================================
# Operator overrides
# =========================================================================


class TestOverrides:
    @pytest.mark.asyncio
    async def test_force_open_rejects_immediately(self):
        clock = _Clock()
        breaker = _breaker(clock, recovery=30)
        await breaker.force_open()
        snap = breaker.snapshot()
        assert snap.state == STATE_OPEN
        assert snap.next_attempt_time == clock.now + timedelta(seconds=30)

        op = _Op()
        with pytest.raises(BreakerOpen):
            await breaker.execute(op)
        assert op.calls == 0

    @pytest.mark.asyncio
    async def test_reset_closes_and_clears_counters(self):
        breaker = _breaker(_Clock())
        await _open(breaker)
        await breaker.reset()

        snap = breaker.snapshot()
        assert snap.state == STATE_CLOSED
        assert snap.failure_count == 0
        assert snap.half_open_calls == 0
        assert snap.next_attempt_time is None
        assert await breaker.execute(_Op()) == "ok"


# =========================================================================
# Registry
# =========================================================================


class TestRegistry:
    def test_named_defaults(self):
        registry = CircuitBreakerRegistry(_default_breakers())

        primary = registry.get(PRIMARY_BREAKER_NAME).config
        assert primary.failure_threshold == 3
        assert primary.recovery_timeout == timedelta(seconds=30)
        assert primary.half_open_max_calls == 2

        tool = registry.get(TOOL_BREAKER_NAME).config
        assert tool.failure_threshold == 5
        assert tool.recovery_timeout == timedelta(seconds=60)
        assert tool.half_open_max_calls == 3

    def test_unknown_name_uses_default_entry(self):
        registry = CircuitBreakerRegistry(
            {"default": CircuitBreakerConfig(failure_threshold=9)}
        )
        assert registry.get("anything").config.failure_threshold == 9

    def test_unknown_name_without_default_entry(self):
        registry = CircuitBreakerRegistry()
        assert registry.get("anything").config == CircuitBreakerConfig()

    def test_get_returns_same_instance(self):
        registry = CircuitBreakerRegistry()
        assert registry.get("a") is registry.get("a")

    @pytest.mark.asyncio
    async def test_execute_and_snapshot_all(self):
        registry = CircuitBreakerRegistry()
        assert await registry.execute("a", _Op(result="x")) == "x"
        registry.get("b")

        snapshots = registry.snapshot_all()
        assert set(snapshots) == {"a", "b"}
        assert snapshots["a"].total_calls == 1
        assert snapshots["b"].total_calls == 0

    @pytest.mark.asyncio
    async def test_force_open_all_and_reset_all(self):
        registry = CircuitBreakerRegistry()
        registry.get("a")
        registry.get("b")

        await registry.force_open_all()
        assert all(s.state == STATE_OPEN for s in registry.snapshot_all().values())

        await registry.reset_all()
        assert all(
            s.state == STATE_CLOSED for s in registry.snapshot_all().values()
        )

    @pytest.mark.asyncio
    async def test_single_breaker_overrides(self):
        registry = CircuitBreakerRegistry()
        registry.get("a")
        await registry.force_open("b")

        snapshots = registry.snapshot_all()
        assert snapshots["a"].state == STATE_CLOSED
        assert snapshots["b"].state == STATE_OPEN

        await registry.reset("b")
        assert registry.get("b").state == STATE_CLOSED
