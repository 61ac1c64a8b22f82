"""LangChain chat-model provider.

Wraps any ``BaseChatModel`` (in production ``ChatOpenAI`` pointed at an
OpenAI-compatible endpoint) as a fallback-chain ``Provider``.  Each call
sends the system prompt, the user's stored history and the new message.

For a ``web_search`` decision with a configured ``SearchClient`` the
search runs first, through the ``tool_execution`` circuit breaker and
bounded by ``tool_timeout``.  Results are added as extra system context;
a failed or rejected search only means answering without it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import timedelta

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
)
from langchain_openai import ChatOpenAI

from chatrelay.configs.system import TOOL_BREAKER_NAME, LLMEndpointConfig
from chatrelay.core.intent.constants import INTENT_TOOL_USE, INTENT_WEB_SEARCH
from chatrelay.core.intent.models import RoutingDecision
from chatrelay.core.memory.models import ROLE_USER, ConversationTurn, MemoryStats
from chatrelay.core.memory.store import ConversationMemoryStore
from chatrelay.infra.resilience import BreakerOpen, CircuitBreakerRegistry

from .base import Provider, SearchClient, SearchResult

logger = logging.getLogger(__name__)


def build_chat_model(config: LLMEndpointConfig, timeout: timedelta) -> ChatOpenAI:
    """Create a ``ChatOpenAI`` client for one configured endpoint."""
    return ChatOpenAI(
        base_url=config.endpoint,
        api_key=config.api_key,
        model=config.model_name,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout=timeout.total_seconds(),
        max_retries=config.max_retries,
    )


def format_search_context(query: str, results: Sequence[SearchResult]) -> str:
    lines = [f'Web search results for "{query}":']
    for i, result in enumerate(results, start=1):
        lines.append(f"{i}. {result.title} ({result.url})")
        if result.description:
            lines.append(f"   {result.description}")
    lines.append("Use these results when they are relevant and cite the URLs.")
    return "\n".join(lines)


class LangChainProvider(Provider):
    """``Provider`` backed by a LangChain chat model."""

    def __init__(
        self,
        name: str,
        model: BaseChatModel,
        memory: ConversationMemoryStore,
        system_prompt: str,
        *,
        supports_tools: bool = True,
        search: SearchClient | None = None,
        breakers: CircuitBreakerRegistry | None = None,
        tool_breaker: str = TOOL_BREAKER_NAME,
        tool_timeout: timedelta = timedelta(seconds=10),
    ) -> None:
        self.name = name
        self._model = model
        self._memory = memory
        self._system_prompt = system_prompt
        self._supports_tools = supports_tools
        self._search = search
        self._breakers = breakers
        self._tool_breaker = tool_breaker
        self._tool_timeout = tool_timeout.total_seconds()

    def supports(self, intent: str) -> bool:
        if intent == INTENT_TOOL_USE:
            return self._supports_tools
        return True

    def get_stats(self) -> MemoryStats:
        return self._memory.stats()

    async def respond(
        self,
        user_id: str,
        text: str,
        request_id: str,
        decision: RoutingDecision | None = None,
    ) -> str:
        history = await self._memory.get(user_id)

        context = None
        if decision is not None and decision.intent == INTENT_WEB_SEARCH:
            context = await self._search_context(
                decision.search_query or text, request_id
            )

        reply = await self._model.ainvoke(self.build_messages(history, text, context))
        content = _message_text(reply)
        if not content.strip():
            raise ValueError(f"Provider '{self.name}' returned an empty reply")
        return content

    def build_messages(
        self,
        history: Sequence[ConversationTurn],
        text: str,
        context: str | None = None,
    ) -> list[BaseMessage]:
        messages: list[BaseMessage] = [SystemMessage(content=self._system_prompt)]
        if context:
            messages.append(SystemMessage(content=context))
        for turn in history:
            if turn.role == ROLE_USER:
                messages.append(HumanMessage(content=turn.content))
            else:
                messages.append(AIMessage(content=turn.content))
        messages.append(HumanMessage(content=text))
        return messages

    # -- search --------------------------------------------------------

    async def _search_context(self, query: str, request_id: str) -> str | None:
        search = self._search
        if search is None:
            return None
        try:
            if self._breakers is not None:
                results = await self._breakers.execute(
                    self._tool_breaker, lambda: self._bounded_search(search, query)
                )
            else:
                results = await self._bounded_search(search, query)
        except BreakerOpen:
            logger.warning(
                "[%s] Search skipped: circuit '%s' is open",
                request_id,
                self._tool_breaker,
            )
            return None
        except Exception as exc:
            logger.warning(
                "[%s] Search failed, answering without results: %r", request_id, exc
            )
            return None

        if not results:
            return None
        return format_search_context(query, results)

    async def _bounded_search(
        self, search: SearchClient, query: str
    ) -> list[SearchResult]:
        async with asyncio.timeout(self._tool_timeout):
            return await search.search(query)


def _message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)
