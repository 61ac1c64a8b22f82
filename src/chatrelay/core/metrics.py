"""Prometheus metrics for the chatrelay application.

Custom business metrics that complement the auto-instrumented HTTP
metrics provided by ``prometheus-fastapi-instrumentator``.

All metrics use the ``chatrelay_`` prefix.
"""

import logging

from fastapi import FastAPI
from prometheus_client import Counter, Gauge, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from chatrelay.configs.system import TracingConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Pipeline metrics
# ---------------------------------------------------------------------------

MESSAGES_TOTAL = Counter(
    "chatrelay_messages_total",
    "Total inbound messages by outcome",
    ["status"],  # "ok" | "exhausted"
)

MESSAGE_DURATION_SECONDS = Histogram(
    "chatrelay_message_duration_seconds",
    "End-to-end duration of processing one message",
    buckets=(0.01, 0.05, 0.1, 0.5, 1, 2, 5, 10, 30, 60),
)

FAST_PATH_HITS_TOTAL = Counter(
    "chatrelay_fast_path_hits_total",
    "Messages answered by the fast path, by category",
    ["category"],
)

# ---------------------------------------------------------------------------
# Intent metrics
# ---------------------------------------------------------------------------

INTENT_DECISIONS_TOTAL = Counter(
    "chatrelay_intent_decisions_total",
    "Routing decisions by final intent and confidence band",
    ["intent", "band"],
)

INTENT_DEFAULTED_TOTAL = Counter(
    "chatrelay_intent_defaulted_total",
    "Classifications replaced by the default intent (low raw score)",
)

# ---------------------------------------------------------------------------
# Provider metrics
# ---------------------------------------------------------------------------

PROVIDER_CALLS_TOTAL = Counter(
    "chatrelay_provider_calls_total",
    "Provider calls by provider, tier and outcome",
    ["provider", "tier", "status"],  # status: ok | error | timeout | rejected
)

PROVIDER_LATENCY_SECONDS = Histogram(
    "chatrelay_provider_latency_seconds",
    "Latency of provider calls",
    ["provider", "tier"],
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60),
)

PROVIDER_FALLBACKS_TOTAL = Counter(
    "chatrelay_provider_fallbacks_total",
    "Messages answered by a non-primary tier",
    ["tier"],  # "fallback" | "emergency"
)

PROVIDERS_EXHAUSTED_TOTAL = Counter(
    "chatrelay_providers_exhausted_total",
    "Messages for which every provider tier failed",
)

# ---------------------------------------------------------------------------
# Circuit breaker metrics
# ---------------------------------------------------------------------------

BREAKER_REJECTIONS_TOTAL = Counter(
    "chatrelay_breaker_rejections_total",
    "Calls rejected because the circuit was open",
    ["breaker"],
)

BREAKER_STATE = Gauge(
    "chatrelay_breaker_state",
    "Circuit state (0=closed, 1=half_open, 2=open)",
    ["breaker"],
)

# ---------------------------------------------------------------------------
# Memory metrics
# ---------------------------------------------------------------------------

MEMORY_USERS = Gauge(
    "chatrelay_memory_users",
    "Number of users with stored conversation history",
)

MEMORY_MESSAGES = Gauge(
    "chatrelay_memory_messages",
    "Number of conversation turns held across all users",
)

MEMORY_SWEEP_EVICTIONS_TOTAL = Counter(
    "chatrelay_memory_sweep_evictions_total",
    "Histories removed by the expiry sweep",
)


# ---------------------------------------------------------------------------
# HTTP instrumentation
# ---------------------------------------------------------------------------


def setup_metrics(app: FastAPI, config: TracingConfig) -> None:
    """Attach HTTP instrumentation and the ``/metrics`` endpoint.

    Must run before the app starts serving: Starlette refuses new
    middleware once the stack is built.
    """
    Instrumentator(
        should_instrument_requests_inprogress=True,
        excluded_handlers=config.excluded_urls,
    ).instrument(app).expose(app, endpoint="/metrics")

    logger.info("Prometheus metrics initialised")
