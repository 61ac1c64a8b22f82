"""ConversationMemoryStore: bounded, TTL-evicted per-user history.

Histories live in process memory only; a restart starts empty.

Writes for one user are serialized with a per-user ``asyncio.Lock`` so
two concurrent requests for the same user keep their turns in order.
Requests for different users never contend.  The expiry sweep takes a
user's lock only for the single removal it performs.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from chatrelay.core.metrics import MEMORY_MESSAGES, MEMORY_USERS

from .models import ConversationHistory, ConversationTurn, MemoryStats, utcnow

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ConversationMemoryStore:
    """Sliding-window conversation history keyed by user id."""

    def __init__(
        self,
        history_limit: int,
        history_expiry: timedelta,
        clock: Clock = utcnow,
    ) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self._limit = history_limit
        self._expiry = history_expiry
        self._clock = clock
        self._histories: dict[str, ConversationHistory] = {}
        # Entries vanish once no coroutine holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def history_limit(self) -> int:
        return self._limit

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    # ------------------------------------------------------------------
    # Request path
    # ------------------------------------------------------------------

    async def append(self, user_id: str, turn: ConversationTurn) -> None:
        """Append one turn, trimming to the most recent ``history_limit``."""
        await self.extend(user_id, (turn,))

    async def extend(self, user_id: str, turns: Iterable[ConversationTurn]) -> None:
        """Append several turns as one write (e.g. a user/assistant pair)."""
        async with self._lock_for(user_id):
            history = self._histories.get(user_id)
            if history is None:
                history = ConversationHistory(user_id=user_id)
                self._histories[user_id] = history

            history.messages.extend(turns)
            if len(history.messages) > self._limit:
                history.messages = history.messages[-self._limit :]
            history.last_activity = self._clock()
        self._publish()

    async def get(self, user_id: str) -> list[ConversationTurn]:
        """Return a copy of the user's turns (empty if none)."""
        async with self._lock_for(user_id):
            history = self._histories.get(user_id)
            return list(history.messages) if history else []

    async def clear(self, user_id: str) -> None:
        """Remove the user's history; idempotent."""
        async with self._lock_for(user_id):
            removed = self._histories.pop(user_id, None)
        if removed is not None:
            self._publish()
            logger.info("Cleared conversation history for user %s", user_id)

    def stats(self) -> MemoryStats:
        return MemoryStats(
            total_users=len(self._histories),
            total_messages=sum(len(h.messages) for h in self._histories.values()),
        )

    def _publish(self) -> None:
        stats = self.stats()
        MEMORY_USERS.set(stats.total_users)
        MEMORY_MESSAGES.set(stats.total_messages)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def _is_expired(self, history: ConversationHistory, now: datetime) -> bool:
        return now - history.last_activity > self._expiry

    async def sweep(self, now: datetime | None = None) -> int:
        """Remove every history idle for longer than ``history_expiry``.

        Returns the number of removed histories.
        """
        now = now or self._clock()
        candidates = [
            user_id
            for user_id, history in list(self._histories.items())
            if self._is_expired(history, now)
        ]

        removed = 0
        for user_id in candidates:
            async with self._lock_for(user_id):
                history = self._histories.get(user_id)
                # Re-check: a write may have landed since the scan.
                if history is not None and self._is_expired(history, now):
                    del self._histories[user_id]
                    removed += 1

        if removed:
            self._publish()
            logger.info("Cleaned up %d expired conversation(s)", removed)
        return removed
