"""IntentCatalog: read-only intent configuration shared by classifier and router.

Bundles the pattern definitions, the confidence bands from
``IntentConfig`` and the tool mapping, and provides the small helper
heuristics (query clean-up, web-search corroboration, tool category)
that both the classifier and the router need.
"""

import logging
from collections.abc import Iterable, Sequence

from chatrelay.configs.system import IntentConfig

from .constants import (
    CATEGORY_GENERAL,
    INTENT_GENERAL_CHAT,
    INTENT_TOOL_USE,
    INTENT_WEB_SEARCH,
    VALID_INTENTS,
    Intent,
)
from .models import IntentPattern
from .patterns import (
    DEFAULT_INTENT_PATTERNS,
    SEARCH_QUERY_REMOVE_PATTERNS,
    TOOL_CATEGORY_TOOLS,
    TOOL_CATEGORY_VOCABULARY,
    WEB_SEARCH_INDICATORS,
    WEB_SEARCH_TOOLS,
)

logger = logging.getLogger(__name__)


class IntentCatalog:
    """Intent patterns, thresholds and tool mapping.

    ``available_tools`` is an optional snapshot of tool names reported by
    a ``ToolCatalog``.  When given, every tool list returned here is
    restricted to tools that actually exist.
    """

    def __init__(
        self,
        config: IntentConfig,
        patterns: Sequence[IntentPattern] = DEFAULT_INTENT_PATTERNS,
        available_tools: Iterable[str] | None = None,
    ) -> None:
        self.config = config
        # Descending priority so iteration order is the tie-break order.
        self._patterns = tuple(
            sorted(patterns, key=lambda p: p.priority, reverse=True)
        )
        self._available = (
            frozenset(available_tools) if available_tools is not None else None
        )

        errors = self.validate()
        if errors:
            raise ValueError("Invalid intent configuration: " + "; ".join(errors))
        logger.debug("Loaded %d intent patterns", len(self._patterns))

    @property
    def patterns(self) -> tuple[IntentPattern, ...]:
        return self._patterns

    @property
    def default_intent(self) -> Intent:
        return self.config.default_intent

    def validate(self) -> list[str]:
        """Return configuration problems (empty when valid)."""
        errors: list[str] = []
        if not self._patterns:
            errors.append("No intent patterns configured")
        configured = {p.intent for p in self._patterns}
        for intent in (INTENT_WEB_SEARCH, INTENT_TOOL_USE, INTENT_GENERAL_CHAT):
            if intent not in configured:
                errors.append(f"Missing required intent pattern: {intent}")
        unknown = configured - VALID_INTENTS
        if unknown:
            errors.append(f"Unknown intents: {sorted(unknown)}")
        if not WEB_SEARCH_TOOLS:
            errors.append("Web search tools not configured")
        return errors

    # ------------------------------------------------------------------
    # Tool mapping
    # ------------------------------------------------------------------

    def tools_for_intent(
        self, intent: str, category: str | None = None
    ) -> tuple[str, ...]:
        if intent == INTENT_WEB_SEARCH:
            tools = WEB_SEARCH_TOOLS
        elif intent == INTENT_TOOL_USE:
            tools = TOOL_CATEGORY_TOOLS.get(
                category or CATEGORY_GENERAL, TOOL_CATEGORY_TOOLS[CATEGORY_GENERAL]
            )
        else:
            tools = ()
        return self._filter_available(tools)

    def set_available_tools(self, names: Iterable[str] | None) -> None:
        """Replace the tool snapshot; ``None`` lifts the restriction."""
        self._available = frozenset(names) if names is not None else None

    def _filter_available(self, tools: tuple[str, ...]) -> tuple[str, ...]:
        if self._available is None:
            return tools
        return tuple(t for t in tools if t in self._available)

    # ------------------------------------------------------------------
    # Heuristics
    # ------------------------------------------------------------------

    def determine_tool_category(self, message: str) -> str:
        """Second keyword pass over category vocabularies; first hit wins."""
        for category, pattern in TOOL_CATEGORY_VOCABULARY:
            if pattern.search(message):
                return category
        return CATEGORY_GENERAL

    def should_trigger_web_search(self, message: str, confidence: float) -> bool:
        """Independent web-search check used to corroborate weak scores."""
        if confidence >= self.config.high_confidence:
            return True
        return any(p.search(message) for p in WEB_SEARCH_INDICATORS)

    @staticmethod
    def optimize_search_query(message: str) -> str:
        """Strip filler prefixes, a leading article and trailing ``?``.

        Falls back to the trimmed original if nothing is left.
        """
        original = message.strip()
        query = original
        for pattern in SEARCH_QUERY_REMOVE_PATTERNS:
            query = pattern.sub("", query, count=1).strip()
        return query or original
