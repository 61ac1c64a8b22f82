"""Pydantic models for the HTTP API."""

from typing import Literal

from pydantic import BaseModel, Field

from chatrelay.core.orchestrator import Tier

# Chat messages are short conversational turns.
CHAT_MESSAGE_MAX_LENGTH = 4096


class ChatRequest(BaseModel):
    """Request model for ``POST /api/v1/chat``."""

    user_id: str = Field(min_length=1, max_length=256, description="Sender id")
    message: str = Field(
        min_length=1,
        max_length=CHAT_MESSAGE_MAX_LENGTH,
        description="Message text",
    )
    request_id: str | None = Field(
        default=None,
        max_length=128,
        description="Caller-supplied id for log correlation; generated if absent",
    )


class ChatResponse(BaseModel):
    """Reply to one chat message."""

    response: str
    request_id: str
    tier: Tier | None = Field(
        default=None, description="Chain tier that answered; null for the fast path"
    )
    fast_path: bool = False


class StatsResponse(BaseModel):
    total_users: int
    total_messages: int


class ProviderSwitchResponse(BaseModel):
    current_provider: str


class AdminActionResponse(BaseModel):
    status: Literal["ok"] = "ok"
    action: str
