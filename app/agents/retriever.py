# =============================================================================
# Retriever Agent — Embed Query + pgvector Search (Solution 2)
# =============================================================================
#
# embed(question) → cosine search over stored chunks → top-k documents.
#
# The query embedding's real token count (from the API response) is priced
# at the embedding model's rate and returned as embedding_cost so callers
# can report it separately from synthesis cost.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from app.config import settings
from app.services.embedder import embed_query
from app.services.pricing import TokenUsage
from app.services.vectorstore import VectorSearchResult, VectorStore, get_vector_store

logger = logging.getLogger(__name__)


@dataclass
class RetrievedDocument:
    """A search hit as shown to clients. `id` is the 1-based rank."""

    id: int
    content: str
    page_number: int | None
    similarity: float
    source: str
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "page_number": self.page_number,
            "similarity": self.similarity,
            "source": self.source,
            "metadata": self.metadata,
        }


@dataclass
class RetrievalResult:
    documents: list[RetrievedDocument]
    embedding_usage: TokenUsage

    @property
    def top_document(self) -> RetrievedDocument | None:
        return self.documents[0] if self.documents else None


def _to_document(rank: int, hit: VectorSearchResult) -> RetrievedDocument:
    return RetrievedDocument(
        id=rank,
        content=hit.content,
        page_number=hit.page_number,
        similarity=hit.similarity_score,
        source=hit.metadata.get("source") or settings.default_source_name,
        metadata=hit.metadata,
    )


async def retrieve(
    question: str,
    top_k: int | None = None,
    store: VectorStore | None = None,
) -> RetrievalResult:
    """
    Find the chunks most similar to `question`.

    Raises:
        ValueError: If OPENAI_API_KEY is missing.
        openai.APIError: If the embedding call fails after retries.
    """
    k = top_k or settings.retrieval_top_k
    embedding = await embed_query(question)
    hits = await (store or get_vector_store()).search(embedding.vector, top_k=k)

    documents = [_to_document(rank, hit) for rank, hit in enumerate(hits, start=1)]
    logger.info(
        "Retrieved %d/%d documents (best similarity=%s, embedding tokens=%d)",
        len(documents),
        k,
        documents[0].similarity if documents else "n/a",
        embedding.usage.input_tokens,
    )
    return RetrievalResult(documents=documents, embedding_usage=embedding.usage)
