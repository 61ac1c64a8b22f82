"""Collaborator interfaces consumed by the orchestrator.

* ``Provider``: anything that can answer a chat message (LLM endpoint,
  static fallback, ...).  Failure is signalled by raising.
* ``ToolCatalog``: optional; its tool names restrict which tools a
  ``RoutingDecision`` may suggest.
* ``SearchClient``: optional; feeds web results to search-capable
  providers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chatrelay.core.intent.models import RoutingDecision
from chatrelay.core.memory.models import MemoryStats

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ToolSpec(BaseModel):
    """A tool as advertised by a ``ToolCatalog``."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=dict, description="JSON schema of the tool arguments"
    )


class SearchResult(BaseModel):
    """One ranked web search hit."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    description: str = ""


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


class Provider(ABC):
    """An interchangeable response provider in the fallback chain."""

    name: str

    @abstractmethod
    async def respond(
        self,
        user_id: str,
        text: str,
        request_id: str,
        decision: RoutingDecision | None = None,
    ) -> str:
        """Return the reply for *text*; raise on any failure."""

    async def clear_history(self, user_id: str) -> None:
        """Drop any per-user state the provider keeps."""

    def get_stats(self) -> MemoryStats:
        return MemoryStats(total_users=0, total_messages=0)

    def supports(self, intent: str) -> bool:
        """Whether this provider can serve a decision with *intent*."""
        return True


class ToolCatalog(ABC):
    """Source of the tools actually available to providers."""

    @abstractmethod
    async def list_tools(self) -> list[ToolSpec]: ...

    @abstractmethod
    async def call_tool(self, name: str, args: dict[str, Any]) -> Any: ...


class SearchClient(ABC):
    """Web search returning results ordered by relevance."""

    @abstractmethod
    async def search(self, query: str) -> list[SearchResult]: ...

    async def aclose(self) -> None:
        """Release any resources held by the client."""
