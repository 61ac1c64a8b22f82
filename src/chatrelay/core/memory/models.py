"""Conversation memory records."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

Role = Literal["user", "assistant"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationTurn(BaseModel):
    """One message in a user's conversation; immutable once created."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


@dataclass
class ConversationHistory:
    """Ordered turns for one user, owned by ``ConversationMemoryStore``."""

    user_id: str
    messages: list[ConversationTurn] = field(default_factory=list)
    last_activity: datetime = field(default_factory=utcnow)


class MemoryStats(BaseModel):
    total_users: int
    total_messages: int
