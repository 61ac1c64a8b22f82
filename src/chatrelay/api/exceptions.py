"""Global exception handlers."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from chatrelay.infra.resilience import AllProvidersExhausted


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers on ``app`` (before it starts)."""

    @app.exception_handler(AllProvidersExhausted)
    async def handle_all_providers_exhausted(
        request: Request, exc: AllProvidersExhausted
    ) -> JSONResponse:
        headers = {"Retry-After": "30"}
        if exc.request_id:
            headers["X-Request-ID"] = exc.request_id
        return JSONResponse(
            status_code=503,
            content={"detail": str(exc), "code": exc.code},
            headers=headers,
        )
