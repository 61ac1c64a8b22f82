"""Lifespan and per-request dependencies for the message pipeline.

Long-lived components are built once by ``build_*`` lifespan
dependencies (see ``chatrelay.infra.lifespan.inject``), stored on
``app.state`` and torn down on shutdown in reverse order:

    build_breakers ─┐
    build_memory ───┼─> build_orchestrator
    build_search ───┘

Route handlers read them back with the ``get_*`` functions.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from chatrelay.configs.config import AppConfig, get_app_config
from chatrelay.configs.system import STATIC_PROVIDER_NAME
from chatrelay.core.intent.catalog import IntentCatalog
from chatrelay.core.memory import ConversationMemoryStore, MemorySweeper
from chatrelay.core.orchestrator import ProviderChain, ProviderFallbackOrchestrator
from chatrelay.core.providers import (
    BraveSearchClient,
    LangChainProvider,
    Provider,
    SearchClient,
    StaticProvider,
    build_chat_model,
)
from chatrelay.infra.lifespan import get_app
from chatrelay.infra.resilience import CircuitBreakerRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Provider construction
# ---------------------------------------------------------------------------


def build_provider(
    name: str,
    config: AppConfig,
    memory: ConversationMemoryStore,
    breakers: CircuitBreakerRegistry,
    search: SearchClient | None,
) -> Provider:
    """Resolve a configured provider name to a ``Provider`` instance."""
    pc = config.providers
    if name == STATIC_PROVIDER_NAME:
        return StaticProvider(pc.emergency_message, name=name)

    endpoint = pc.endpoints.get(name)
    if endpoint is None:
        raise ValueError(
            f"Unknown provider '{name}': add it under providers.endpoints "
            f"or use '{STATIC_PROVIDER_NAME}'"
        )
    return LangChainProvider(
        name,
        build_chat_model(endpoint, pc.provider_timeout),
        memory,
        pc.system_prompt,
        supports_tools=endpoint.supports_tools,
        search=search,
        breakers=breakers,
        tool_breaker=pc.tool_breaker,
        tool_timeout=pc.tool_timeout,
    )


def build_chain(
    config: AppConfig,
    memory: ConversationMemoryStore,
    breakers: CircuitBreakerRegistry,
    search: SearchClient | None,
) -> ProviderChain:
    """Select primary, fallback and emergency providers once at startup."""
    pc = config.providers
    if pc.primary == pc.fallback:
        raise ValueError(
            f"Primary and fallback providers must differ (both '{pc.primary}')"
        )
    emergency = (
        build_provider(pc.emergency, config, memory, breakers, search)
        if pc.emergency
        else None
    )
    chain = ProviderChain(
        primary=build_provider(pc.primary, config, memory, breakers, search),
        fallback=build_provider(pc.fallback, config, memory, breakers, search),
        emergency=emergency,
    )
    logger.info(
        "Provider chain: primary=%s, fallback=%s, emergency=%s",
        pc.primary,
        pc.fallback,
        pc.emergency or "-",
    )
    return chain


# ---------------------------------------------------------------------------
# Lifespan dependencies
# ---------------------------------------------------------------------------


async def build_breakers(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[CircuitBreakerRegistry, None]:
    """Create the ``CircuitBreakerRegistry`` and attach it to ``app.state``."""
    registry = CircuitBreakerRegistry(config.circuit_breakers)
    app.state.breakers = registry
    yield registry


async def build_memory(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[ConversationMemoryStore, None]:
    """Create the memory store and run its expiry sweeper until shutdown."""
    mc = config.memory
    store = ConversationMemoryStore(
        history_limit=mc.history_limit, history_expiry=mc.history_expiry
    )
    sweeper = MemorySweeper(store, interval=mc.cleanup_interval, timeout=mc.sweep_timeout)
    app.state.memory = store
    await sweeper.start()
    try:
        yield store
    finally:
        await sweeper.stop()


async def build_search(
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[SearchClient | None, None]:
    """Create the web search client when enabled; close it on shutdown."""
    sc = config.search
    if not sc.enabled:
        logger.info("Web search disabled.")
        yield None
        return
    if not sc.api_key:
        logger.warning("Web search enabled but search.api_key is not set; disabling.")
        yield None
        return

    client = BraveSearchClient(sc)
    logger.info("Web search enabled (Brave, count=%d)", sc.count)
    try:
        yield client
    finally:
        await client.aclose()


async def build_orchestrator(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
    memory: Annotated[ConversationMemoryStore, Depends(build_memory)],
    breakers: Annotated[CircuitBreakerRegistry, Depends(build_breakers)],
    search: Annotated[SearchClient | None, Depends(build_search)],
) -> AsyncGenerator[None, None]:
    """Wire the pipeline and attach it to ``app.state.orchestrator``."""
    orchestrator = ProviderFallbackOrchestrator(
        chain=build_chain(config, memory, breakers, search),
        memory=memory,
        breakers=breakers,
        catalog=IntentCatalog(config.intent),
        provider_timeout=config.providers.provider_timeout,
        primary_breaker=config.providers.primary_breaker,
    )
    app.state.orchestrator = orchestrator
    yield


# ---------------------------------------------------------------------------
# Per-request dependency, read from app.state
# ---------------------------------------------------------------------------


def get_orchestrator(request: Request) -> ProviderFallbackOrchestrator:
    """Return the ``ProviderFallbackOrchestrator`` from ``app.state``."""
    return request.app.state.orchestrator
