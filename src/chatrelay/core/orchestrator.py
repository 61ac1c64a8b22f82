"""ProviderFallbackOrchestrator: the message pipeline.

For each inbound ``(user_id, text, request_id)``:

1. **Fast path**: a trivially recognizable message (greeting, thanks,
   "ok", ...) gets a canned reply.  No classifier, provider or breaker.
2. **Classify and route**: ``IntentClassifier`` then ``IntentRouter``
   produce a ``RoutingDecision``.  It only decides which tiers are
   eligible; providers that do not support the decided intent are
   skipped.
3. **Fallback chain**: the first tier runs through the primary circuit
   breaker; the fallback and emergency tiers are called directly.  Each
   call is bounded by ``provider_timeout``.  ``BreakerOpen`` and
   ``ProviderExecutionFailure`` are logged and move on to the next tier.
4. **Memory**: every successful exchange (fast path included) appends
   the user and assistant turns as one write.

``AllProvidersExhausted`` is the only error that leaves this module.

Tier names are positions in the chain: ``primary`` is whichever
provider ``current`` points at (and is breaker-guarded), ``fallback``
is the other one, ``emergency`` is the optional last resort.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Literal

from opentelemetry import trace
from pydantic import BaseModel, ConfigDict

from chatrelay.configs.system import PRIMARY_BREAKER_NAME
from chatrelay.core.intent.catalog import IntentCatalog
from chatrelay.core.intent.classifier import IntentClassifier
from chatrelay.core.intent.constants import INTENT_GENERAL_CHAT
from chatrelay.core.intent.fast_path import FastPathMatcher
from chatrelay.core.intent.models import RoutingDecision
from chatrelay.core.intent.router import IntentRouter
from chatrelay.core.memory.models import (
    ROLE_ASSISTANT,
    ROLE_USER,
    ConversationTurn,
    MemoryStats,
)
from chatrelay.core.memory.store import ConversationMemoryStore
from chatrelay.core.metrics import (
    FAST_PATH_HITS_TOTAL,
    MESSAGE_DURATION_SECONDS,
    MESSAGES_TOTAL,
    PROVIDER_CALLS_TOTAL,
    PROVIDER_FALLBACKS_TOTAL,
    PROVIDER_LATENCY_SECONDS,
    PROVIDERS_EXHAUSTED_TOTAL,
)
from chatrelay.infra.id_utils import generate_request_id
from chatrelay.infra.logging import bind_request_id
from chatrelay.infra.resilience import (
    STATE_CLOSED,
    AllProvidersExhausted,
    BreakerOpen,
    CircuitBreakerRegistry,
    CircuitBreakerSnapshot,
    ProviderExecutionFailure,
)
from chatrelay.infra.telemetry import (
    ATTR_FAST_PATH_CATEGORY,
    ATTR_INTENT,
    ATTR_INTENT_CONFIDENCE,
    ATTR_INTENT_DEFAULTED,
    ATTR_PROVIDER,
    ATTR_PROVIDER_ERROR,
    ATTR_PROVIDER_TIER,
    ATTR_REQUEST_ID,
    SPAN_CLASSIFY,
    SPAN_PIPELINE,
    SPAN_PROVIDER_CALL,
    tracer,
)

from .providers.base import Provider, ToolCatalog

logger = logging.getLogger(__name__)

TIER_PRIMARY: Literal["primary"] = "primary"
TIER_FALLBACK: Literal["fallback"] = "fallback"
TIER_EMERGENCY: Literal["emergency"] = "emergency"

Tier = Literal["primary", "fallback", "emergency"]

HEALTH_HEALTHY = "healthy"
HEALTH_DEGRADED = "degraded"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


@dataclass
class ProviderChain:
    """Primary / fallback / emergency providers, fixed at startup.

    ``current`` is flipped only by the operator switch operations.
    """

    primary: Provider
    fallback: Provider
    emergency: Provider | None = None
    current: Provider = field(init=False)

    def __post_init__(self) -> None:
        self.current = self.primary

    def tiers(self) -> list[tuple[Tier, Provider]]:
        other = self.fallback if self.current is self.primary else self.primary
        tiers: list[tuple[Tier, Provider]] = [
            (TIER_PRIMARY, self.current),
            (TIER_FALLBACK, other),
        ]
        if self.emergency is not None:
            tiers.append((TIER_EMERGENCY, self.emergency))
        return tiers

    def providers(self) -> list[Provider]:
        return [p for _, p in self.tiers()]


class MessageOutcome(BaseModel):
    """What answered a message and how."""

    model_config = ConfigDict(frozen=True)

    text: str
    request_id: str
    tier: Tier | None = None
    provider: str | None = None
    fast_path: bool = False
    decision: RoutingDecision | None = None


class HealthReport(BaseModel):
    status: Literal["healthy", "degraded"]
    current_provider: str
    circuit_breakers: dict[str, CircuitBreakerSnapshot]
    memory: MemoryStats


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class ProviderFallbackOrchestrator:
    """Public entry point of the routing and resilience layer."""

    def __init__(
        self,
        chain: ProviderChain,
        memory: ConversationMemoryStore,
        breakers: CircuitBreakerRegistry,
        catalog: IntentCatalog,
        *,
        fast_path: FastPathMatcher | None = None,
        provider_timeout: timedelta = timedelta(seconds=30),
        primary_breaker: str = PRIMARY_BREAKER_NAME,
        tool_catalog: ToolCatalog | None = None,
    ) -> None:
        self.chain = chain
        self.memory = memory
        self.breakers = breakers
        self.catalog = catalog
        self.classifier = IntentClassifier(catalog)
        self.router = IntentRouter(catalog)
        self.fast_path = fast_path or FastPathMatcher()
        self._timeout = provider_timeout.total_seconds()
        self._primary_breaker = primary_breaker
        self._tool_catalog = tool_catalog
        # Created eagerly so status and operator overrides see it before
        # the first message.
        self.breakers.get(primary_breaker)

    # ------------------------------------------------------------------
    # Request path
    # ------------------------------------------------------------------

    async def process_message(
        self, user_id: str, text: str, request_id: str | None = None
    ) -> str:
        """Return the reply text; raises only ``AllProvidersExhausted``."""
        outcome = await self.handle_message(user_id, text, request_id)
        return outcome.text

    async def handle_message(
        self, user_id: str, text: str, request_id: str | None = None
    ) -> MessageOutcome:
        request_id = request_id or generate_request_id()
        start = time.perf_counter()
        with bind_request_id(request_id), tracer.start_as_current_span(
            SPAN_PIPELINE
        ) as span:
            span.set_attribute(ATTR_REQUEST_ID, request_id)
            try:
                outcome = await self._handle(user_id, text, request_id)
            except AllProvidersExhausted:
                MESSAGES_TOTAL.labels(status="exhausted").inc()
                raise
            finally:
                MESSAGE_DURATION_SECONDS.observe(time.perf_counter() - start)
        MESSAGES_TOTAL.labels(status="ok").inc()
        return outcome

    async def _handle(
        self, user_id: str, text: str, request_id: str
    ) -> MessageOutcome:
        history = await self.memory.get(user_id)
        match = self.fast_path.match(text, history)
        if match is not None:
            FAST_PATH_HITS_TOTAL.labels(category=match.category).inc()
            trace.get_current_span().set_attribute(
                ATTR_FAST_PATH_CATEGORY, match.category
            )
            logger.info("[%s] Fast path hit (%s)", request_id, match.category)
            await self._remember(user_id, text, match.response)
            return MessageOutcome(
                text=match.response, request_id=request_id, fast_path=True
            )

        decision = self._route(text, request_id)
        decision, tiers = self._eligible_tiers(decision, request_id)

        for tier, provider in tiers:
            try:
                reply = await self._call(
                    tier, provider, user_id, text, request_id, decision
                )
            except BreakerOpen as exc:
                logger.warning(
                    "[%s] %s tier skipped: circuit '%s' is open",
                    request_id,
                    tier,
                    exc.breaker,
                )
                continue
            except ProviderExecutionFailure as exc:
                logger.warning("[%s] %s", request_id, exc)
                continue

            await self._remember(user_id, text, reply)
            if tier != TIER_PRIMARY:
                PROVIDER_FALLBACKS_TOTAL.labels(tier=tier).inc()
                logger.warning(
                    "[%s] Answered by %s tier (provider '%s')",
                    request_id,
                    tier,
                    provider.name,
                )
            return MessageOutcome(
                text=reply,
                request_id=request_id,
                tier=tier,
                provider=provider.name,
                decision=decision,
            )

        PROVIDERS_EXHAUSTED_TOTAL.inc()
        logger.error("[%s] All provider tiers failed", request_id)
        raise AllProvidersExhausted(request_id)

    def _route(self, text: str, request_id: str) -> RoutingDecision:
        with tracer.start_as_current_span(SPAN_CLASSIFY) as span:
            detected = self.classifier.classify(text)
            decision = self.router.route(detected, text)
            span.set_attribute(ATTR_INTENT, decision.intent)
            span.set_attribute(ATTR_INTENT_CONFIDENCE, decision.confidence)
            span.set_attribute(ATTR_INTENT_DEFAULTED, detected.defaulted)
        logger.info(
            "[%s] Routed to %s (%.2f): %s",
            request_id,
            decision.intent,
            decision.confidence,
            decision.routing_reason,
        )
        return decision

    def _eligible_tiers(
        self, decision: RoutingDecision, request_id: str
    ) -> tuple[RoutingDecision, list[tuple[Tier, Provider]]]:
        tiers = self.chain.tiers()
        eligible = [(t, p) for t, p in tiers if p.supports(decision.intent)]
        if eligible:
            return decision, eligible

        logger.info(
            "[%s] No provider supports %s; downgrading to %s",
            request_id,
            decision.intent,
            INTENT_GENERAL_CHAT,
        )
        downgraded = decision.model_copy(
            update={
                "intent": INTENT_GENERAL_CHAT,
                "tools_to_use": (),
                "search_query": None,
                "tool_category": None,
                "should_fallback": True,
                "routing_reason": f"No provider supports {decision.intent}",
            }
        )
        return downgraded, tiers

    async def _call(
        self,
        tier: Tier,
        provider: Provider,
        user_id: str,
        text: str,
        request_id: str,
        decision: RoutingDecision,
    ) -> str:
        async def invoke() -> str:
            try:
                async with asyncio.timeout(self._timeout):
                    return await provider.respond(user_id, text, request_id, decision)
            except TimeoutError as exc:
                raise ProviderExecutionFailure(
                    provider.name, tier, f"timed out after {self._timeout:.1f}s"
                ) from exc
            except Exception as exc:
                raise ProviderExecutionFailure(provider.name, tier, repr(exc)) from exc

        start = time.perf_counter()
        with tracer.start_as_current_span(SPAN_PROVIDER_CALL) as span:
            span.set_attribute(ATTR_PROVIDER, provider.name)
            span.set_attribute(ATTR_PROVIDER_TIER, tier)
            try:
                if tier == TIER_PRIMARY:
                    reply = await self.breakers.execute(self._primary_breaker, invoke)
                else:
                    reply = await invoke()
            except BreakerOpen:
                PROVIDER_CALLS_TOTAL.labels(
                    provider=provider.name, tier=tier, status="rejected"
                ).inc()
                span.set_attribute(ATTR_PROVIDER_ERROR, "breaker_open")
                raise
            except ProviderExecutionFailure as exc:
                status = (
                    "timeout" if isinstance(exc.__cause__, TimeoutError) else "error"
                )
                PROVIDER_CALLS_TOTAL.labels(
                    provider=provider.name, tier=tier, status=status
                ).inc()
                span.set_attribute(ATTR_PROVIDER_ERROR, status)
                raise
            finally:
                PROVIDER_LATENCY_SECONDS.labels(
                    provider=provider.name, tier=tier
                ).observe(time.perf_counter() - start)

        PROVIDER_CALLS_TOTAL.labels(provider=provider.name, tier=tier, status="ok").inc()
        return reply

    async def _remember(self, user_id: str, text: str, reply: str) -> None:
        await self.memory.extend(
            user_id,
            (
                ConversationTurn(role=ROLE_USER, content=text),
                ConversationTurn(role=ROLE_ASSISTANT, content=reply),
            ),
        )

    # ------------------------------------------------------------------
    # Operator operations
    # ------------------------------------------------------------------

    async def switch_to_fallback(self) -> None:
        await self._switch(self.chain.fallback)
        logger.warning("Switched to fallback provider '%s'", self.chain.fallback.name)

    async def switch_to_primary(self) -> None:
        await self._switch(self.chain.primary)
        logger.info("Switched to primary provider '%s'", self.chain.primary.name)

    async def _switch(self, provider: Provider) -> None:
        # The guarded breaker tracks whichever provider is current, so its
        # failure history leaves with the provider being switched away from.
        if self.chain.current is provider:
            return
        self.chain.current = provider
        await self.breakers.reset(self._primary_breaker)
        logger.info(
            "Reset circuit breaker '%s' for provider '%s'",
            self._primary_breaker,
            provider.name,
        )

    async def reset_circuit_breakers(self) -> None:
        await self.breakers.reset_all()

    async def force_circuit_breakers_open(self) -> None:
        await self.breakers.force_open_all()

    def get_circuit_breaker_status(self) -> dict[str, CircuitBreakerSnapshot]:
        return self.breakers.snapshot_all()

    async def clear_history(self, user_id: str) -> None:
        await self.memory.clear(user_id)
        for provider in self.chain.providers():
            await provider.clear_history(user_id)

    def get_stats(self) -> MemoryStats:
        return self.memory.stats()

    async def refresh_tools(self) -> int:
        """Restrict routed tools to those the ``ToolCatalog`` lists.

        Returns the number of available tools; without a catalog the
        restriction is left untouched and ``-1`` is returned.
        """
        if self._tool_catalog is None:
            return -1
        specs = await self._tool_catalog.list_tools()
        self.catalog.set_available_tools(spec.name for spec in specs)
        logger.info("Tool catalog refreshed: %d tool(s) available", len(specs))
        return len(specs)

    def health(self) -> HealthReport:
        breakers = self.get_circuit_breaker_status()
        primary = breakers.get(self._primary_breaker)
        healthy = primary is None or primary.state == STATE_CLOSED
        return HealthReport(
            status=HEALTH_HEALTHY if healthy else HEALTH_DEGRADED,
            current_provider=self.chain.current.name,
            circuit_breakers=breakers,
            memory=self.get_stats(),
        )
