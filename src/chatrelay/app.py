"""FastAPI application entry point.

Run with ``uvicorn chatrelay.app:app``.
"""

import logging
from typing import Annotated

from fastapi import Depends, FastAPI

from chatrelay.api.admin import router as admin_router
from chatrelay.api.chat import router as chat_router
from chatrelay.api.exceptions import register_exception_handlers
from chatrelay.api.health import router as health_router
from chatrelay.configs.config import get_app_config
from chatrelay.core.deps import build_orchestrator
from chatrelay.core.metrics import setup_metrics
from chatrelay.infra.lifespan import inject
from chatrelay.infra.logging import setup_logging
from chatrelay.infra.telemetry import init_telemetry

logger = logging.getLogger(__name__)


@inject
async def lifespan(
    app: FastAPI,
    _orchestrator: Annotated[None, Depends(build_orchestrator)],
):
    logger.info("chatrelay started")
    yield
    logger.info("Shutting down chatrelay...")


def get_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    config = get_app_config()
    setup_logging(config.logging)

    app = FastAPI(
        title="chatrelay",
        description="Intent routing and provider fallback for a chat assistant",
        version="0.1.0",
        lifespan=lifespan,
    )
    register_exception_handlers(app)

    app.include_router(chat_router)
    app.include_router(admin_router)
    app.include_router(health_router)

    # Both add middleware, so they must run before the app starts.
    setup_metrics(app, config.tracing)
    init_telemetry(app, config.tracing)

    return app


app = get_app()
