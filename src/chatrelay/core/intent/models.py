"""Intent configuration and result models."""

import re
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

from .constants import FastPathCategory, Intent


@dataclass(frozen=True)
class IntentPattern:
    """Static keyword/regex definition for one intent.

    ``priority`` is a score multiplier (``priority / 3``) and the
    tie-breaker when two intents score the same.
    """

    intent: Intent
    priority: int
    keywords: frozenset[str] = field(default_factory=frozenset)
    regex_patterns: tuple[re.Pattern[str], ...] = ()


class IntentDetectionResult(BaseModel):
    """Classifier output for a single message."""

    model_config = ConfigDict(frozen=True)

    intent: Intent
    confidence: float = Field(ge=0.0, le=1.0)
    suggested_tools: tuple[str, ...] = ()
    search_query: str | None = None
    tool_category: str | None = None
    defaulted: bool = Field(
        default=False,
        description="True when a low raw score was replaced by the default intent",
    )


class RoutingDecision(BaseModel):
    """Router output: what the pipeline should do with a message."""

    model_config = ConfigDict(frozen=True)

    intent: Intent
    confidence: float = Field(ge=0.0, le=1.0)
    tools_to_use: tuple[str, ...] = ()
    search_query: str | None = None
    tool_category: str | None = None
    should_fallback: bool = False
    routing_reason: str = ""


class FastPathMatch(BaseModel):
    """A canned reply produced without classification or provider calls."""

    model_config = ConfigDict(frozen=True)

    category: FastPathCategory
    response: str
