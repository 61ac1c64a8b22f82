"""IntentRouter: turns a classification into a routing decision.

Four confidence bands, evaluated high to low.  Each band states how much
independent corroboration a signal needs before it is acted on:

* **high**: trust the classifier outright.
* **medium**: re-validate web_search with the indicator heuristic and
  tool_use with the tool mapping; on failure downgrade to general chat
  with ``should_fallback=True``.
* **low**: default to general chat unless strong indicators (web
  indicators, or action verbs with a tool_use classification) are present.
* **fallback**: the configured default intent, ``should_fallback=True``.

The decision is informational; the router never calls a provider.
"""

import logging

from chatrelay.core.metrics import INTENT_DECISIONS_TOTAL

from .catalog import IntentCatalog
from .constants import (
    BAND_FALLBACK,
    BAND_HIGH,
    BAND_LOW,
    BAND_MEDIUM,
    INTENT_GENERAL_CHAT,
    INTENT_TOOL_USE,
    INTENT_WEB_SEARCH,
)
from .models import IntentDetectionResult, RoutingDecision
from .patterns import ACTION_VERBS

logger = logging.getLogger(__name__)

VALIDATION_FAILED_CONFIDENCE = 0.6
LOW_WEB_SEARCH_FLOOR = 0.7
LOW_TOOL_USE_FLOOR = 0.6
LOW_GENERAL_CHAT_CONFIDENCE = 0.7
FALLBACK_CONFIDENCE = 0.5


class IntentRouter:
    """Applies the confidence-band policy to an ``IntentDetectionResult``."""

    def __init__(self, catalog: IntentCatalog) -> None:
        self._catalog = catalog

    def band_for(self, confidence: float) -> str:
        cfg = self._catalog.config
        if confidence >= cfg.high_confidence:
            return BAND_HIGH
        if confidence >= cfg.medium_confidence:
            return BAND_MEDIUM
        if confidence >= cfg.low_confidence:
            return BAND_LOW
        return BAND_FALLBACK

    def route(self, detected: IntentDetectionResult, message: str) -> RoutingDecision:
        """Return a routing decision; never raises."""
        band = self.band_for(detected.confidence)
        try:
            if band == BAND_HIGH:
                decision = self._high(detected, message)
            elif band == BAND_MEDIUM:
                decision = self._medium(detected, message)
            elif band == BAND_LOW:
                decision = self._low(detected, message)
            else:
                decision = self._fallback()
        except Exception:
            logger.exception("Routing failed; using fallback routing")
            band = BAND_FALLBACK
            decision = self._fallback()

        INTENT_DECISIONS_TOTAL.labels(intent=decision.intent, band=band).inc()
        logger.debug(
            "Routing (%s band): %s (%.2f) - %s",
            band,
            decision.intent,
            decision.confidence,
            decision.routing_reason,
        )
        return decision

    # ------------------------------------------------------------------
    # Bands
    # ------------------------------------------------------------------

    def _high(self, detected: IntentDetectionResult, message: str) -> RoutingDecision:
        reason = f"High confidence {detected.intent} intent detected"
        if detected.intent == INTENT_WEB_SEARCH:
            return self._web_search(detected.confidence, message, reason)
        if detected.intent == INTENT_TOOL_USE:
            return self._tool_use(detected.confidence, message, reason)
        return RoutingDecision(
            intent=detected.intent,
            confidence=detected.confidence,
            tools_to_use=detected.suggested_tools,
            routing_reason=reason,
        )

    def _medium(self, detected: IntentDetectionResult, message: str) -> RoutingDecision:
        if detected.intent == INTENT_WEB_SEARCH:
            if self._catalog.should_trigger_web_search(message, detected.confidence):
                return self._web_search(
                    detected.confidence,
                    message,
                    "Medium confidence web search with validation passed",
                )
            return self._downgraded(
                "Web search validation failed, falling back to general chat"
            )

        if detected.intent == INTENT_TOOL_USE:
            category = self._catalog.determine_tool_category(message)
            if self._catalog.tools_for_intent(INTENT_TOOL_USE, category):
                return self._tool_use(
                    detected.confidence,
                    message,
                    f"Medium confidence tool routing to {category} category",
                    category=category,
                )
            return self._downgraded(
                "No tools available for the detected category, "
                "falling back to general chat"
            )

        return RoutingDecision(
            intent=INTENT_GENERAL_CHAT,
            confidence=detected.confidence,
            routing_reason="Medium confidence general chat intent",
        )

    def _low(self, detected: IntentDetectionResult, message: str) -> RoutingDecision:
        if self._catalog.should_trigger_web_search(message, detected.confidence):
            return self._web_search(
                max(detected.confidence, LOW_WEB_SEARCH_FLOOR),
                message,
                "Low confidence but strong web search indicators detected",
            )

        if detected.intent == INTENT_TOOL_USE and ACTION_VERBS.search(message):
            return self._tool_use(
                max(detected.confidence, LOW_TOOL_USE_FLOOR),
                message,
                "Low confidence but explicit action words detected for tools",
            )

        return RoutingDecision(
            intent=INTENT_GENERAL_CHAT,
            confidence=LOW_GENERAL_CHAT_CONFIDENCE,
            routing_reason="Low confidence intent, defaulting to general chat",
        )

    def _fallback(self) -> RoutingDecision:
        default = self._catalog.default_intent
        return RoutingDecision(
            intent=default,
            confidence=FALLBACK_CONFIDENCE,
            tools_to_use=self._catalog.tools_for_intent(default),
            should_fallback=True,
            routing_reason=(
                f"Intent confidence below threshold, using default intent: {default}"
            ),
        )

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def _web_search(
        self, confidence: float, message: str, reason: str
    ) -> RoutingDecision:
        return RoutingDecision(
            intent=INTENT_WEB_SEARCH,
            confidence=confidence,
            tools_to_use=self._catalog.tools_for_intent(INTENT_WEB_SEARCH),
            search_query=self._catalog.optimize_search_query(message),
            routing_reason=reason,
        )

    def _tool_use(
        self,
        confidence: float,
        message: str,
        reason: str,
        category: str | None = None,
    ) -> RoutingDecision:
        category = category or self._catalog.determine_tool_category(message)
        return RoutingDecision(
            intent=INTENT_TOOL_USE,
            confidence=confidence,
            tools_to_use=self._catalog.tools_for_intent(INTENT_TOOL_USE, category),
            tool_category=category,
            routing_reason=reason,
        )

    @staticmethod
    def _downgraded(reason: str) -> RoutingDecision:
        return RoutingDecision(
            intent=INTENT_GENERAL_CHAT,
            confidence=VALIDATION_FAILED_CONFIDENCE,
            should_fallback=True,
            routing_reason=reason,
        )
