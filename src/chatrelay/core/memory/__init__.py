"""Per-user conversation memory -- bounded store and expiry sweeper."""

from .models import ConversationTurn, MemoryStats
from .store import ConversationMemoryStore
from .sweeper import MemorySweeper

__all__ = [
    "ConversationMemoryStore",
    "ConversationTurn",
    "MemoryStats",
    "MemorySweeper",
]
