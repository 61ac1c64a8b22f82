"""Background task that evicts idle conversation histories.

``MemorySweeper`` owns an ``asyncio.Task`` that calls
``ConversationMemoryStore.sweep`` every ``cleanup_interval``; each tick
is bounded by ``sweep_timeout``.  It is started and stopped explicitly
by the application lifespan (see ``chatrelay.core.deps.build_memory``).
"""

import asyncio
import logging
from datetime import timedelta

from chatrelay.core.metrics import MEMORY_SWEEP_EVICTIONS_TOTAL
from chatrelay.infra.telemetry import ATTR_SWEEP_REMOVED, SPAN_MEMORY_SWEEP, tracer

from .store import ConversationMemoryStore

logger = logging.getLogger(__name__)


class MemorySweeper:
    """Manages the expiry-sweep loop lifecycle."""

    def __init__(
        self,
        store: ConversationMemoryStore,
        interval: timedelta,
        timeout: timedelta,
    ) -> None:
        self._store = store
        self._interval = interval.total_seconds()
        self._timeout = timeout.total_seconds()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="memory-sweeper")
        logger.info("Memory sweeper started (interval=%ds)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Memory sweeper stopped.")

    async def tick(self) -> int:
        """Run one bounded sweep; returns the number of evicted histories."""
        with tracer.start_as_current_span(SPAN_MEMORY_SWEEP) as span:
            async with asyncio.timeout(self._timeout):
                removed = await self._store.sweep()
            span.set_attribute(ATTR_SWEEP_REMOVED, removed)
        MEMORY_SWEEP_EVICTIONS_TOTAL.inc(removed)
        return removed

    # -- internal ----------------------------------------------------

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.tick()
            except asyncio.CancelledError:
                logger.info("Memory sweeper cancelled, shutting down.")
                raise
            except TimeoutError:
                logger.warning(
                    "Memory sweep exceeded %.1fs; will retry next tick",
                    self._timeout,
                )
            except Exception:
                logger.exception("Memory sweep tick failed")
