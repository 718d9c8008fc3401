# =============================================================================
# Embedding Service — OpenAI text-embedding-3-small
# =============================================================================
#
# Two entry points, matching the two execution models:
#   - embed_batch(): sync, batched. Ingestion (Celery / CLI script).
#   - embed_query(): async, single text. Query path, returns the vector
#     together with the real prompt-token count so the query embedding
#     can be costed ($0.02 / 1M tokens).
#
# Both clients are created lazily with max_retries=0; transient failures
# are retried by app/services/retry.py on the query path and by Celery on
# the ingestion path.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from openai import AsyncOpenAI, OpenAI

from app.config import settings
from app.services.pricing import TokenUsage, build_usage
from app.services.retry import call_with_retry

logger = logging.getLogger(__name__)


@dataclass
class QueryEmbedding:
    vector: list[float]
    usage: TokenUsage


# ---------------------------------------------------------------------------
# Clients — lazy singletons
# ---------------------------------------------------------------------------

_client: OpenAI | None = None
_async_client: AsyncOpenAI | None = None


def _client_kwargs() -> dict:
    if not settings.openai_api_key:
        raise ValueError(
            "No API key configured for embeddings. Set OPENAI_API_KEY in .env"
        )
    kwargs: dict = {"api_key": settings.openai_api_key, "max_retries": 0}
    if settings.embedding_base_url:
        kwargs["base_url"] = settings.embedding_base_url
    return kwargs


def _get_client() -> OpenAI:
    """Lazily initialize and cache the sync embedding client."""
    global _client
    if _client is None:
        _client = OpenAI(**_client_kwargs())
        logger.info(
            "Initialized embedding client (model=%s, base_url=%s)",
            settings.embedding_model,
            settings.embedding_base_url or "https://api.openai.com/v1",
        )
    return _client


def _get_async_client() -> AsyncOpenAI:
    global _async_client
    if _async_client is None:
        _async_client = AsyncOpenAI(**_client_kwargs())
    return _async_client


def _create_kwargs(inputs: list[str]) -> dict:
    kwargs: dict = {"model": settings.embedding_model, "input": inputs}
    if settings.embedding_dimensions:
        kwargs["dimensions"] = settings.embedding_dimensions
    return kwargs


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def embed_batch(
    texts: Sequence[str],
    batch_size: int | None = None,
) -> list[list[float]]:
    """
    Embed texts in sub-batches, returning vectors in input order.

    Raises:
        ValueError: If OPENAI_API_KEY is not configured.
        openai.APIError: If the OpenAI API call fails.
    """
    if not texts:
        return []

    client = _get_client()
    _batch_size = batch_size or settings.embedding_batch_size

    all_embeddings: list[list[float]] = [[] for _ in texts]
    total_tokens = 0

    for i in range(0, len(texts), _batch_size):
        batch = list(texts[i : i + _batch_size])
        logger.info(
            "Embedding batch %d–%d of %d texts (model=%s)",
            i + 1,
            min(i + _batch_size, len(texts)),
            len(texts),
            settings.embedding_model,
        )

        response = client.embeddings.create(**_create_kwargs(batch))

        # Place by response index, not arrival order
        for item in sorted(response.data, key=lambda x: x.index):
            all_embeddings[i + item.index] = item.embedding

        total_tokens += response.usage.prompt_tokens if response.usage else 0

    usage = build_usage("openai_compatible", settings.embedding_model, total_tokens)
    logger.info(
        "Generated %d embeddings (model=%s, %d tokens, ~$%.6f)",
        len(texts),
        settings.embedding_model,
        total_tokens,
        usage.estimated_cost,
    )
    return all_embeddings


async def embed_query(text: str) -> QueryEmbedding:
    """Embed one query string and report its token usage."""
    client = _get_async_client()
    response = await call_with_retry(
        client.embeddings.create, **_create_kwargs([text])
    )
    tokens = response.usage.prompt_tokens if response.usage else 0
    return QueryEmbedding(
        vector=response.data[0].embedding,
        usage=build_usage("openai_compatible", settings.embedding_model, tokens),
    )
