"""Named circuit breakers guarding provider and tool calls.

A breaker starts CLOSED.  ``failure_threshold`` consecutive failures
open it; while OPEN every call is rejected with ``BreakerOpen`` without
invoking the wrapped coroutine.  Once ``recovery_timeout`` has elapsed
the next call moves it to HALF_OPEN and goes through as a trial.
``half_open_max_calls`` successful trials close it again; any failed
trial re-opens it immediately.

State transitions run under an ``asyncio.Lock``; the wrapped call itself
runs outside of it.  Breaker state is per process and starts CLOSED on
every restart.

Usage::

    registry = CircuitBreakerRegistry(config.circuit_breakers)
    reply = await registry.execute(
        "primary_provider_execution", lambda: provider.respond(...)
    )
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, timezone
from typing import Literal, TypeVar

from pydantic import BaseModel, ConfigDict

from chatrelay.configs.system import DEFAULT_BREAKER_KEY, CircuitBreakerConfig
from chatrelay.core.metrics import BREAKER_REJECTIONS_TOTAL, BREAKER_STATE

from .base import BreakerOpen

logger = logging.getLogger(__name__)

T = TypeVar("T")
Clock = Callable[[], datetime]

STATE_CLOSED: Literal["CLOSED"] = "CLOSED"
STATE_OPEN: Literal["OPEN"] = "OPEN"
STATE_HALF_OPEN: Literal["HALF_OPEN"] = "HALF_OPEN"

CircuitState = Literal["CLOSED", "OPEN", "HALF_OPEN"]

_STATE_GAUGE_VALUE = {STATE_CLOSED: 0, STATE_HALF_OPEN: 1, STATE_OPEN: 2}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CircuitBreakerSnapshot(BaseModel):
    """Point-in-time view of one breaker, safe to serialize."""

    model_config = ConfigDict(frozen=True)

    name: str
    state: CircuitState
    failure_count: int
    success_count: int
    total_calls: int
    last_failure_time: datetime | None = None
    last_success_time: datetime | None = None
    next_attempt_time: datetime | None = None
    half_open_calls: int


class CircuitBreaker:
    """One named CLOSED / OPEN / HALF_OPEN state machine."""

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig,
        clock: Clock = _utcnow,
    ) -> None:
        self.name = name
        self.config = config
        self._clock = clock
        self._lock = asyncio.Lock()

        self._state: CircuitState = STATE_CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._total_calls = 0
        self._last_failure_time: datetime | None = None
        self._last_success_time: datetime | None = None
        self._next_attempt_time: datetime | None = None
        self._half_open_calls = 0
        # Trials admitted in the current HALF_OPEN episode and not yet finished.
        self._trials_in_flight = 0
        # Bumped on every entry to HALF_OPEN; stale trials are ignored.
        self._episode = 0

        BREAKER_STATE.labels(breaker=name).set(_STATE_GAUGE_VALUE[STATE_CLOSED])

    @property
    def state(self) -> CircuitState:
        return self._state

    # ------------------------------------------------------------------
    # Guarded execution
    # ------------------------------------------------------------------

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn()`` under breaker protection.

        Raises ``BreakerOpen`` without calling ``fn`` when the circuit
        rejects the call; otherwise re-raises whatever ``fn`` raised
        after recording the failure.
        """
        trial = await self._admit()
        try:
            result = await fn()
        except Exception:
            await self._record_failure(trial)
            raise
        except BaseException:
            # Cancelled: frees the trial slot without counting an outcome.
            if trial is not None and trial == self._episode:
                self._trials_in_flight = max(0, self._trials_in_flight - 1)
            raise
        await self._record_success(trial)
        return result

    async def _admit(self) -> int | None:
        """Count the call and decide whether it may proceed.

        Returns the HALF_OPEN episode number for a trial call, ``None``
        for a normal CLOSED call.
        """
        async with self._lock:
            self._total_calls += 1

            if self._state == STATE_OPEN:
                retry_at = self._next_attempt_time
                if retry_at is not None and self._clock() < retry_at:
                    self._reject()
                self._transition(STATE_HALF_OPEN)

            if self._state == STATE_HALF_OPEN:
                if self._trials_in_flight >= self.config.half_open_max_calls:
                    self._reject()
                self._trials_in_flight += 1
                return self._episode

            return None

    def _reject(self) -> None:
        BREAKER_REJECTIONS_TOTAL.labels(breaker=self.name).inc()
        logger.debug(
            "Circuit breaker '%s' rejected call (state=%s, next attempt at %s)",
            self.name,
            self._state,
            self._next_attempt_time,
        )
        raise BreakerOpen(self.name)

    async def _record_success(self, trial: int | None) -> None:
        async with self._lock:
            self._success_count += 1
            self._last_success_time = self._clock()

            if self._is_current_trial(trial):
                self._trials_in_flight -= 1
                self._half_open_calls += 1
                if self._half_open_calls >= self.config.half_open_max_calls:
                    self._transition(STATE_CLOSED)
                    logger.info(
                        "Circuit breaker '%s' closed after successful recovery",
                        self.name,
                    )
            elif self._state == STATE_CLOSED:
                self._failure_count = 0

    async def _record_failure(self, trial: int | None) -> None:
        async with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()

            if self._is_current_trial(trial):
                self._transition(STATE_OPEN)
                logger.warning(
                    "Circuit breaker '%s' re-opened after a failed trial call",
                    self.name,
                )
            elif (
                self._state == STATE_CLOSED
                and self._failure_count >= self.config.failure_threshold
            ):
                self._transition(STATE_OPEN)
                logger.warning(
                    "Circuit breaker '%s' opened after %d consecutive failures",
                    self.name,
                    self._failure_count,
                )

    def _is_current_trial(self, trial: int | None) -> bool:
        return (
            trial is not None
            and trial == self._episode
            and self._state == STATE_HALF_OPEN
        )

    def _transition(self, state: CircuitState) -> None:
        previous = self._state
        self._state = state
        if state == STATE_OPEN:
            self._next_attempt_time = self._clock() + self.config.recovery_timeout
        else:
            self._next_attempt_time = None
        if state == STATE_HALF_OPEN:
            self._episode += 1
            self._half_open_calls = 0
            self._trials_in_flight = 0
        elif state == STATE_CLOSED:
            self._failure_count = 0

        BREAKER_STATE.labels(breaker=self.name).set(_STATE_GAUGE_VALUE[state])
        if previous != state:
            logger.debug(
                "Circuit breaker '%s': %s -> %s", self.name, previous, state
            )

    # ------------------------------------------------------------------
    # Operator overrides
    # ------------------------------------------------------------------

    async def reset(self) -> None:
        """Force CLOSED and clear the failure/success counters."""
        async with self._lock:
            self._transition(STATE_CLOSED)
            self._success_count = 0
            self._half_open_calls = 0
            self._trials_in_flight = 0
        logger.info("Circuit breaker '%s' has been reset", self.name)

    async def force_open(self) -> None:
        """Force OPEN; the next trial is due after ``recovery_timeout``."""
        async with self._lock:
            self._transition(STATE_OPEN)
        logger.warning("Circuit breaker '%s' has been forced open", self.name)

    def snapshot(self) -> CircuitBreakerSnapshot:
        return CircuitBreakerSnapshot(
            name=self.name,
            state=self._state,
            failure_count=self._failure_count,
            success_count=self._success_count,
            total_calls=self._total_calls,
            last_failure_time=self._last_failure_time,
            last_success_time=self._last_success_time,
            next_attempt_time=self._next_attempt_time,
            half_open_calls=self._half_open_calls,
        )


class CircuitBreakerRegistry:
    """Creates breakers on first use from per-name configuration.

    Names without their own entry use the ``default`` entry, or
    ``CircuitBreakerConfig()`` if there is none.
    """

    def __init__(
        self,
        configs: Mapping[str, CircuitBreakerConfig] | None = None,
        clock: Clock = _utcnow,
    ) -> None:
        self._configs = dict(configs or {})
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}

    def config_for(self, name: str) -> CircuitBreakerConfig:
        return self._configs.get(
            name, self._configs.get(DEFAULT_BREAKER_KEY, CircuitBreakerConfig())
        )

    def get(self, name: str) -> CircuitBreaker:
        breaker = self._breakers.get(name)
        if breaker is None:
            breaker = CircuitBreaker(name, self.config_for(name), clock=self._clock)
            self._breakers[name] = breaker
        return breaker

    async def execute(self, name: str, fn: Callable[[], Awaitable[T]]) -> T:
        return await self.get(name).execute(fn)

    def snapshot_all(self) -> dict[str, CircuitBreakerSnapshot]:
        return {name: b.snapshot() for name, b in self._breakers.items()}

    async def reset(self, name: str) -> None:
        await self.get(name).reset()

    async def force_open(self, name: str) -> None:
        await self.get(name).force_open()

    async def reset_all(self) -> None:
        for breaker in list(self._breakers.values()):
            await breaker.reset()

    async def force_open_all(self) -> None:
        for breaker in list(self._breakers.values()):
            await breaker.force_open()
