"""Tracing for the message pipeline.

Span and attribute names used by the orchestrator, the search client and
the memory sweeper live here.  ``init_telemetry`` swaps in an SDK
``TracerProvider`` with an OTLP HTTP exporter; until then ``tracer``
produces non-recording spans.
"""

from __future__ import annotations

import base64
import logging

from fastapi import FastAPI
from opentelemetry import trace

from chatrelay.configs.system import TracingConfig

logger = logging.getLogger(__name__)

tracer = trace.get_tracer("chatrelay")

# ---------------------------------------------------------------------------
# Span names
# ---------------------------------------------------------------------------

SPAN_PIPELINE = "pipeline.process_message"
SPAN_CLASSIFY = "intent.classify"
SPAN_PROVIDER_CALL = "provider.call"
SPAN_SEARCH = "search.query"
SPAN_MEMORY_SWEEP = "memory.sweep"

# ---------------------------------------------------------------------------
# Span attribute keys
# ---------------------------------------------------------------------------

ATTR_REQUEST_ID = "pipeline.request_id"
ATTR_FAST_PATH_CATEGORY = "pipeline.fast_path_category"
ATTR_INTENT = "intent.name"
ATTR_INTENT_CONFIDENCE = "intent.confidence"
ATTR_INTENT_DEFAULTED = "intent.defaulted"
ATTR_PROVIDER = "provider.name"
ATTR_PROVIDER_TIER = "provider.tier"
ATTR_PROVIDER_ERROR = "provider.error"
ATTR_SEARCH_RESULT_COUNT = "search.result_count"
ATTR_SWEEP_REMOVED = "memory.sweep_removed"

def _auth_headers(settings: TracingConfig) -> dict[str, str]:
    if not (settings.username and settings.password):
        return {}
    token = base64.b64encode(
        f"{settings.username}:{settings.password}".encode()
    ).decode()
    return {"Authorization": f"Basic {token}"}


def _install_tracer_provider(settings: TracingConfig) -> None:
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter,
    )
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
    from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

    provider = TracerProvider(
        resource=Resource.create({"service.name": settings.service_name}),
        sampler=ParentBased(root=TraceIdRatioBased(settings.sample_rate)),
    )
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=settings.endpoint, headers=_auth_headers(settings))
        )
    )
    trace.set_tracer_provider(provider)


def init_telemetry(app: FastAPI | None, settings: TracingConfig | None) -> None:
    """Export spans over OTLP and instrument FastAPI and httpx.

    No-op unless ``settings.enabled`` is set and an endpoint is configured.
    Basic auth is sent only when both username and password are present.
    """
    if settings is None or not settings.enabled:
        logger.info("OpenTelemetry tracing disabled.")
        return
    if not settings.endpoint:
        logger.warning("Tracing enabled but tracing.endpoint is not set; skipping.")
        return

    _install_tracer_provider(settings)

    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

    if app is not None:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(
            app, excluded_urls=",".join(settings.excluded_urls)
        )
    HTTPXClientInstrumentor().instrument()

    logger.info(
        "OpenTelemetry tracing initialised (service=%s, sample_rate=%.2f).",
        settings.service_name,
        settings.sample_rate,
    )
