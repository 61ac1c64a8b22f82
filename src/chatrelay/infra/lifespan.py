"""Lifespan dependency injection bridge.

``inject`` lets the FastAPI lifespan declare ``Depends()`` parameters
the same way a route handler does, so each long-lived component (breaker
registry, memory store and sweeper, orchestrator) is a ``build_*``
generator that owns both its setup and its teardown.

Based on https://github.com/fastapi/fastapi/discussions/11742
"""

from contextlib import AsyncExitStack, asynccontextmanager
from functools import partial
from typing import Any, Callable

from fastapi import FastAPI, Request
from fastapi.dependencies.utils import get_dependant, solve_dependencies


def get_app(request: Request) -> FastAPI:
    """Lifespan dependency: the ``FastAPI`` application itself."""
    return request.app


def _lifespan_request(app: FastAPI, stack: AsyncExitStack) -> Request:
    """A synthetic request carrying ``app``, its state and the exit stack.

    Newer FastAPI releases look up generator dependency cleanups on the
    request scope, so the lifespan stack is published under each of
    their keys.
    """
    return Request(
        scope={
            "type": "http",
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": "/",
            "raw_path": b"/",
            "query_string": b"",
            "root_path": "",
            "headers": ((b"x-request-scope", b"lifespan"),),
            "client": ("localhost", 80),
            "server": ("localhost", 80),
            "state": app.state,
            "app": app,
            "fastapi_astack": stack,
            "fastapi_inner_astack": stack,
            "fastapi_function_astack": stack,
        }
    )


def inject(
    lifespan: Callable[..., Any],
) -> Callable[[FastAPI], Any]:
    """Resolve ``Depends()`` parameters for a lifespan function.

    Usage::

        @inject
        async def lifespan(
            app: FastAPI,
            _orchestrator: Annotated[None, Depends(build_orchestrator)],
        ):
            yield

    ``AsyncExitStack`` runs the dependency cleanups in reverse
    resolution order on shutdown.  ``app.dependency_overrides`` is
    respected, so tests can swap any lifespan dependency.
    """

    @asynccontextmanager
    async def wrapper(app: FastAPI):  # type: ignore[misc]
        dependant = get_dependant(path="/", call=partial(lifespan, app))

        async with AsyncExitStack() as stack:
            solved = await solve_dependencies(
                request=_lifespan_request(app, stack),
                dependant=dependant,
                async_exit_stack=stack,
                embed_body_fields=False,
                dependency_overrides_provider=app,
            )
            if solved.errors:
                raise RuntimeError(f"Lifespan dependencies failed: {solved.errors}")
            async with asynccontextmanager(lifespan)(app, **solved.values):
                yield

    return wrapper
