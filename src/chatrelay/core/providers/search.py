"""Brave web search adapter.

Thin ``SearchClient`` over the Brave Search REST API.  Errors (HTTP
status, transport, malformed payload) propagate to the caller; the LLM
provider runs searches through the ``tool_execution`` breaker and
degrades to answering without search context.
"""

from __future__ import annotations

import logging

import httpx

from chatrelay.configs.system import SearchConfig
from chatrelay.infra.telemetry import ATTR_SEARCH_RESULT_COUNT, SPAN_SEARCH, tracer

from .base import SearchClient, SearchResult

logger = logging.getLogger(__name__)

_TOKEN_HEADER = "X-Subscription-Token"


class BraveSearchClient(SearchClient):
    """``SearchClient`` backed by ``GET /res/v1/web/search``."""

    def __init__(
        self,
        config: SearchConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not config.api_key:
            raise ValueError("Brave search requires search.api_key")
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=config.timeout.total_seconds()
        )

    async def search(self, query: str) -> list[SearchResult]:
        params = {
            "q": query,
            "count": str(self._config.count),
            "country": self._config.country,
            "search_lang": self._config.search_lang,
        }
        headers = {
            "Accept": "application/json",
            _TOKEN_HEADER: self._config.api_key or "",
        }
        with tracer.start_as_current_span(SPAN_SEARCH) as span:
            response = await self._client.get(
                self._config.endpoint, params=params, headers=headers
            )
            response.raise_for_status()
            results = self._parse(response.json())
            span.set_attribute(ATTR_SEARCH_RESULT_COUNT, len(results))

        logger.debug("Brave search returned %d result(s)", len(results))
        return results

    @staticmethod
    def _parse(payload: dict) -> list[SearchResult]:
        web = payload.get("web") or {}
        return [
            SearchResult(
                title=item.get("title", ""),
                url=item["url"],
                description=item.get("description", ""),
            )
            for item in web.get("results") or []
            if item.get("url")
        ]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
