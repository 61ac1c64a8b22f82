"""Root logger setup.

One stdout handler serves the app and uvicorn.  Records are rendered as
JSON lines by default (``timestamp``, ``level``, ``logger``, ``message``,
``request_id``, ``trace_id``, ``span_id``) or as coloured text with
``logging.json_output: false``.

``request_id`` comes from ``request_id_var``, which the orchestrator sets
for the duration of one message; trace and span ids come from the active
OpenTelemetry span.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from opentelemetry import trace

from chatrelay.configs.system import LoggingConfig

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "opentelemetry")
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_JSON_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(message)s "
    "%(request_id)s %(trace_id)s %(span_id)s"
)
_TEXT_FORMAT = "%(levelprefix)s %(asctime)s %(name)s  %(message)s"


@contextmanager
def bind_request_id(request_id: str) -> Iterator[None]:
    """Attach *request_id* to every record logged inside the block."""
    token = request_id_var.set(request_id)
    try:
        yield
    finally:
        request_id_var.reset(token)


class _ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        ctx = trace.get_current_span().get_span_context()
        valid = ctx is not None and ctx.is_valid
        record.trace_id = format(ctx.trace_id, "032x") if valid else ""  # type: ignore[attr-defined]
        record.span_id = format(ctx.span_id, "016x") if valid else ""  # type: ignore[attr-defined]
        return True


def _formatter(json_output: bool) -> logging.Formatter:
    if not json_output:
        from uvicorn.logging import DefaultFormatter

        return DefaultFormatter(fmt=_TEXT_FORMAT, datefmt="%H:%M:%S", use_colors=True)

    from pythonjsonlogger.json import JsonFormatter

    return JsonFormatter(
        fmt=_JSON_FORMAT,
        rename_fields={
            "asctime": "timestamp",
            "levelname": "level",
            "name": "logger",
        },
    )


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Install the shared handler; call once before the app starts."""
    config = config or LoggingConfig()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_ContextFilter())
    handler.setFormatter(_formatter(config.json_output))

    root = logging.getLogger()
    root.setLevel(config.level.upper())
    root.handlers = [handler]

    for name in _UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = [handler]
        uvicorn_logger.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
