# =============================================================================
# Web Search Agent — Tavily (Solution 2)
# =============================================================================
#
# Live web results shown next to the document-grounded answer. Web search
# is supplementary: a missing TAVILY_API_KEY or any Tavily failure is
# logged and yields an empty result list instead of failing the query.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass

from tavily import AsyncTavilyClient

from app.config import settings

logger = logging.getLogger(__name__)


@dataclass
class WebResult:
    id: int
    title: str
    url: str
    content: str

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "url": self.url, "content": self.content}


_client: AsyncTavilyClient | None = None


def _get_client() -> AsyncTavilyClient | None:
    global _client
    if _client is None and settings.tavily_api_key:
        _client = AsyncTavilyClient(api_key=settings.tavily_api_key)
    return _client


def _parse_results(payload: dict) -> list[WebResult]:
    return [
        WebResult(
            id=i,
            title=item.get("title") or "No title",
            url=item.get("url") or "",
            content=item.get("content") or item.get("snippet") or "",
        )
        for i, item in enumerate(payload.get("results") or [], start=1)
    ]


async def search_web(query: str, max_results: int | None = None) -> list[WebResult]:
    client = _get_client()
    if client is None:
        logger.warning("TAVILY_API_KEY not set, skipping web search")
        return []

    try:
        payload = await client.search(
            query, max_results=max_results or settings.web_search_max_results,
        )
    except Exception as exc:
        logger.warning("Web search failed, continuing without it: %s", exc)
        return []

    results = _parse_results(payload)
    logger.info("Web search returned %d results", len(results))
    return results
