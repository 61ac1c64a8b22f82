"""Keyword + regex intent classifier.

For each configured ``IntentPattern`` the normalized message is scored as::

    (0.3 * keyword_hits + 0.4 * regex_hits
     + 0.2 * keyword_hits / word_count) * priority / 3

and clamped to ``[0, 1]``.  The best score wins, ties go to the higher
priority.  A winner below ``fallback_threshold`` is replaced by the
default intent at a fixed moderate confidence; callers never see a
classifier error.
"""

import logging
import re
from functools import lru_cache

from chatrelay.core.metrics import INTENT_DEFAULTED_TOTAL

from .catalog import IntentCatalog
from .constants import INTENT_TOOL_USE, INTENT_WEB_SEARCH
from .models import IntentDetectionResult, IntentPattern

logger = logging.getLogger(__name__)

KEYWORD_WEIGHT = 0.3
PATTERN_WEIGHT = 0.4
DENSITY_WEIGHT = 0.2
PRIORITY_DIVISOR = 3

DEFAULTED_CONFIDENCE = 0.5


@lru_cache(maxsize=1024)
def _keyword_regex(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(keyword.lower())}(?!\w)")


def score_pattern(message: str, pattern: IntentPattern) -> float:
    """Score a normalized *message* against one intent *pattern*."""
    words = message.split()
    total_words = max(len(words), 1)

    keyword_hits = sum(
        1 for kw in pattern.keywords if _keyword_regex(kw).search(message)
    )
    pattern_hits = sum(1 for rx in pattern.regex_patterns if rx.search(message))

    score = KEYWORD_WEIGHT * keyword_hits + PATTERN_WEIGHT * pattern_hits
    if keyword_hits:
        score += DENSITY_WEIGHT * (keyword_hits / total_words)

    score *= pattern.priority / PRIORITY_DIVISOR
    return min(max(score, 0.0), 1.0)


class IntentClassifier:
    """Scores a message against every intent in the catalog."""

    def __init__(self, catalog: IntentCatalog) -> None:
        self._catalog = catalog

    def classify(self, message: str) -> IntentDetectionResult:
        """Return the best intent for *message*; never raises."""
        try:
            return self._classify(message)
        except Exception:
            logger.exception("Intent classification failed; using default intent")
            return self._defaulted()

    def _classify(self, message: str) -> IntentDetectionResult:
        normalized = message.lower().strip()

        best_pattern: IntentPattern | None = None
        best_score = -1.0
        # Patterns are in descending priority, so strict ">" keeps the
        # higher-priority pattern on ties.
        for pattern in self._catalog.patterns:
            score = score_pattern(normalized, pattern)
            if score > best_score:
                best_pattern, best_score = pattern, score

        if best_pattern is None or best_score < self._catalog.config.fallback_threshold:
            logger.info(
                "Intent score %.2f below fallback threshold %.2f; defaulting to %s",
                max(best_score, 0.0),
                self._catalog.config.fallback_threshold,
                self._catalog.default_intent,
            )
            return self._defaulted()

        intent = best_pattern.intent
        search_query = None
        category = None
        tools: tuple[str, ...] = ()

        if intent == INTENT_WEB_SEARCH:
            search_query = self._catalog.optimize_search_query(message)
            tools = self._catalog.tools_for_intent(INTENT_WEB_SEARCH)
        elif intent == INTENT_TOOL_USE:
            category = self._catalog.determine_tool_category(normalized)
            tools = self._catalog.tools_for_intent(INTENT_TOOL_USE, category)

        result = IntentDetectionResult(
            intent=intent,
            confidence=best_score,
            suggested_tools=tools,
            search_query=search_query,
            tool_category=category,
        )
        logger.debug(
            "Intent detected: %s (confidence: %.2f)", result.intent, result.confidence
        )
        return result

    def _defaulted(self) -> IntentDetectionResult:
        INTENT_DEFAULTED_TOTAL.inc()
        return IntentDetectionResult(
            intent=self._catalog.default_intent,
            confidence=DEFAULTED_CONFIDENCE,
            defaulted=True,
        )
