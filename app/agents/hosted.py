# =============================================================================
# Hosted Answer Pipeline — OpenAI Responses API (Solution 1)
# =============================================================================
#
# One user query → two Responses API calls, run concurrently:
#
#   file_search:        gpt-4o-mini + file_search tool over the hosted vector
#                       store. store=True and chained on previous_response_id
#                       so follow-up questions keep conversational context.
#   web_search_preview: gpt-4o-mini + hosted web search, stateless.
#
# Retrieval and generation both happen inside OpenAI; this module only
# sequences the calls, sums token usage across them and prices it.
#
# With include_web=False only the file search call is made and web_answer
# is empty.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.config import settings
from app.services.hosted_store import get_openai_client
from app.services.pricing import TokenUsage, build_usage
from app.services.retry import call_with_retry

logger = logging.getLogger(__name__)


@dataclass
class HostedAnswer:
    """Combined result of the file-search and web-search calls."""

    file_answer: str
    web_answer: str
    file_response_id: str
    web_response_id: str | None
    model: str
    usage: TokenUsage
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


async def file_search(
    query: str,
    vector_store_id: str,
    previous_response_id: str | None = None,
):
    """Responses API call grounded on the hosted vector store."""
    request: dict = {
        "model": settings.responses_model,
        "input": query,
        "tools": [{"type": "file_search", "vector_store_ids": [vector_store_id]}],
        "store": True,
    }
    if previous_response_id:
        request["previous_response_id"] = previous_response_id

    logger.info(
        "file_search: vector_store=%s, chained=%s",
        vector_store_id, bool(previous_response_id),
    )
    return await call_with_retry(get_openai_client().responses.create, **request)


async def web_search(query: str):
    """Responses API call with the hosted web search tool."""
    logger.info("web_search: query='%s'", query[:80])
    return await call_with_retry(
        get_openai_client().responses.create,
        model=settings.responses_model,
        input=query,
        tools=[{"type": "web_search_preview"}],
    )


def _usage_of(response) -> TokenUsage:
    usage = response.usage
    return build_usage(
        "openai_compatible",
        settings.responses_model,
        usage.input_tokens if usage else 0,
        usage.output_tokens if usage else 0,
    )


async def ask_hosted(
    query: str,
    vector_store_id: str,
    previous_response_id: str | None = None,
    include_web: bool = True,
) -> HostedAnswer:
    """
    Answer a question with hosted file search (+ hosted web search).

    Raises:
        ValueError: If OPENAI_API_KEY is missing.
        openai.APIError: If either call fails after retries.
    """
    if include_web:
        file_response, web_response = await asyncio.gather(
            file_search(query, vector_store_id, previous_response_id),
            web_search(query),
        )
    else:
        file_response = await file_search(query, vector_store_id, previous_response_id)
        web_response = None

    usage = _usage_of(file_response)
    if web_response is not None:
        usage = usage + _usage_of(web_response)

    logger.info(
        "[cost] model=%s input=%d output=%d total=%d cost=$%.6f",
        settings.responses_model,
        usage.input_tokens,
        usage.output_tokens,
        usage.total_tokens,
        usage.estimated_cost,
    )

    return HostedAnswer(
        file_answer=file_response.output_text,
        web_answer=web_response.output_text if web_response is not None else "",
        file_response_id=file_response.id,
        web_response_id=web_response.id if web_response is not None else None,
        model=settings.responses_model,
        usage=usage,
    )
