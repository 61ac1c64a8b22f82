"""Tests for LangChainProvider message building and search degradation."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from chatrelay.configs.system import TOOL_BREAKER_NAME, CircuitBreakerConfig
from chatrelay.core.intent.constants import (
    INTENT_GENERAL_CHAT,
    INTENT_TOOL_USE,
    INTENT_WEB_SEARCH,
)
from chatrelay.core.intent.models import RoutingDecision
from chatrelay.core.memory import ConversationMemoryStore, ConversationTurn
from chatrelay.core.memory.models import ROLE_ASSISTANT, ROLE_USER
from chatrelay.core.providers import (
    LangChainProvider,
    SearchClient,
    SearchResult,
)
from chatrelay.core.providers.llm import format_search_context
from chatrelay.infra.resilience import STATE_OPEN, CircuitBreakerRegistry

PROMPT = "You are a test assistant."

SEARCH_DECISION = RoutingDecision(
    intent=INTENT_WEB_SEARCH, confidence=0.9, search_query="weather in Paris"
)


class _Search(SearchClient):
    def __init__(self, fail: bool = False, delay: float = 0.0) -> None:
        self.fail = fail
        self.delay = delay
        self.queries: list[str] = []

    async def search(self, query: str) -> list[SearchResult]:
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("search down")
        return [SearchResult(title="Paris", url="https://p.example", description="21°C")]


def _model(reply="an answer") -> AsyncMock:
    model = AsyncMock()
    model.ainvoke.return_value = AIMessage(content=reply)
    return model


def _memory() -> ConversationMemoryStore:
    return ConversationMemoryStore(history_limit=20, history_expiry=timedelta(hours=1))


def _provider(model, memory=None, **kwargs) -> LangChainProvider:
    return LangChainProvider("llm", model, memory or _memory(), PROMPT, **kwargs)


def _sent(model: AsyncMock) -> list:
    return model.ainvoke.call_args.args[0]


# =========================================================================
# Messages
# =========================================================================


class TestMessages:
    @pytest.mark.asyncio
    async def test_history_is_sent_in_order(self):
        memory = _memory()
        await memory.extend(
            "u1",
            [
                ConversationTurn(role=ROLE_USER, content="q1"),
                ConversationTurn(role=ROLE_ASSISTANT, content="a1"),
            ],
        )
        model = _model()

        reply = await _provider(model, memory).respond("u1", "q2", "r1")

        assert reply == "an answer"
        sent = _sent(model)
        assert [type(m) for m in sent] == [
            SystemMessage, HumanMessage, AIMessage, HumanMessage,
        ]
        assert [m.content for m in sent] == [PROMPT, "q1", "a1", "q2"]

    @pytest.mark.asyncio
    async def test_empty_reply_raises(self):
        with pytest.raises(ValueError, match="empty"):
            await _provider(_model("  ")).respond("u1", "hi", "r1")

    @pytest.mark.asyncio
    async def test_list_content_is_joined(self):
        model = _model([{"type": "text", "text": "a"}, "b"])
        assert await _provider(model).respond("u1", "hi", "r1") == "ab"

    def test_supports(self):
        assert _provider(_model()).supports(INTENT_TOOL_USE)
        limited = _provider(_model(), supports_tools=False)
        assert not limited.supports(INTENT_TOOL_USE)
        assert limited.supports(INTENT_WEB_SEARCH)

    @pytest.mark.asyncio
    async def test_stats_come_from_memory(self):
        memory = _memory()
        await memory.append("u1", ConversationTurn(role=ROLE_USER, content="x"))
        assert _provider(_model(), memory).get_stats().total_messages == 1


# =========================================================================
# Web search context
# =========================================================================


class TestSearchContext:
    @pytest.mark.asyncio
    async def test_results_are_added_as_system_context(self):
        model, search = _model(), _Search()
        registry = CircuitBreakerRegistry()
        provider = _provider(model, search=search, breakers=registry)

        await provider.respond("u1", "what is the weather in Paris", "r1", SEARCH_DECISION)

        assert search.queries == ["weather in Paris"]
        sent = _sent(model)
        assert isinstance(sent[1], SystemMessage)
        assert sent[1].content == format_search_context(
            "weather in Paris",
            [SearchResult(title="Paris", url="https://p.example", description="21°C")],
        )
        assert registry.get(TOOL_BREAKER_NAME).snapshot().success_count == 1

    @pytest.mark.asyncio
    async def test_no_search_for_other_intents(self):
        search = _Search()
        decision = RoutingDecision(intent=INTENT_GENERAL_CHAT, confidence=0.6)
        await _provider(_model(), search=search).respond("u1", "hi", "r1", decision)
        assert search.queries == []

    @pytest.mark.asyncio
    async def test_search_without_breakers(self):
        model, search = _model(), _Search()

        await _provider(model, search=search).respond(
            "u1", "weather", "r1", SEARCH_DECISION
        )

        assert search.queries == ["weather in Paris"]
        assert len(_sent(model)) == 3

    @pytest.mark.asyncio
    async def test_no_search_client_sends_no_context(self):
        model = _model()
        await _provider(model).respond("u1", "weather", "r1", SEARCH_DECISION)
        assert len(_sent(model)) == 2

    @pytest.mark.asyncio
    async def test_failed_search_degrades_and_counts(self):
        model = _model()
        registry = CircuitBreakerRegistry()
        provider = _provider(model, search=_Search(fail=True), breakers=registry)

        reply = await provider.respond("u1", "weather", "r1", SEARCH_DECISION)

        assert reply == "an answer"
        assert len(_sent(model)) == 2
        assert registry.get(TOOL_BREAKER_NAME).snapshot().failure_count == 1

    @pytest.mark.asyncio
    async def test_slow_search_is_bounded(self):
        model = _model()
        provider = _provider(
            model,
            search=_Search(delay=1.0),
            tool_timeout=timedelta(milliseconds=20),
        )
        assert await provider.respond("u1", "weather", "r1", SEARCH_DECISION)
        assert len(_sent(model)) == 2

    @pytest.mark.asyncio
    async def test_open_tool_breaker_skips_search(self):
        search = _Search()
        registry = CircuitBreakerRegistry(
            {TOOL_BREAKER_NAME: CircuitBreakerConfig(failure_threshold=1)}
        )
        await registry.force_open(TOOL_BREAKER_NAME)
        model = _model()

        await _provider(model, search=search, breakers=registry).respond(
            "u1", "weather", "r1", SEARCH_DECISION
        )

        assert search.queries == []
        assert len(_sent(model)) == 2
        assert registry.get(TOOL_BREAKER_NAME).state == STATE_OPEN
