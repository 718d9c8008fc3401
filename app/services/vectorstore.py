# =============================================================================
# Vector Store — pgvector Chunk Storage & Similarity Search (Solution 2)
# =============================================================================
#
# Writes are sync (Celery worker / ingestion script), reads are async
# (FastAPI request path), matching each caller's execution model.
#
# Similarity: pgvector's cosine_distance() is in [0, 2]; we report
# 1 - distance, which is [0, 1] for OpenAI's normalised embeddings.
#
# The VectorStore Protocol keeps the retriever agent decoupled from
# SQLAlchemy, and lets tests pass in a fake.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy import delete, select

from app.db.engine import async_session_factory, get_sync_session
from app.db.models import Chunk

logger = logging.getLogger(__name__)


@dataclass
class VectorSearchResult:
    """A stored chunk plus its cosine similarity to the query."""

    chunk_id: int
    content: str
    page_number: int | None
    similarity_score: float  # higher = more relevant
    metadata: dict = field(default_factory=dict)


class VectorStore(Protocol):
    def add_chunks(
        self,
        document_id: int,
        contents: list[str],
        embeddings: list[list[float]],
        metadatas: list[dict],
    ) -> list[int]:
        """Store chunks with their embeddings. Returns created chunk IDs."""
        ...

    async def search(
        self,
        query_embedding: list[float],
        top_k: int = 2,
        document_id: int | None = None,
    ) -> list[VectorSearchResult]:
        """Most similar chunks to the query, highest similarity first."""
        ...


class PgVectorStore:
    """pgvector-backed vector store using PostgreSQL."""

    def add_chunks(
        self,
        document_id: int,
        contents: list[str],
        embeddings: list[list[float]],
        metadatas: list[dict],
    ) -> list[int]:
        with get_sync_session() as session:
            # Re-ingesting a document replaces its chunks
            session.execute(delete(Chunk).where(Chunk.document_id == document_id))

            chunks = []
            for i, (content, embedding, meta) in enumerate(
                zip(contents, embeddings, metadatas, strict=True)
            ):
                chunk = Chunk(
                    document_id=document_id,
                    content=content,
                    page_number=meta.get("page_number"),
                    chunk_index=meta.get("chunk_index", i),
                    token_count=meta.get("token_count", 0),
                    embedding=embedding,
                    metadata_=meta,
                )
                session.add(chunk)
                chunks.append(chunk)

            # flush assigns primary keys before the context manager commits
            session.flush()
            chunk_ids = [c.id for c in chunks]

        logger.info(
            "Stored %d chunks for document_id=%d in pgvector",
            len(chunk_ids), document_id,
        )
        return chunk_ids

    async def search(
        self,
        query_embedding: list[float],
        top_k: int = 2,
        document_id: int | None = None,
    ) -> list[VectorSearchResult]:
        distance = Chunk.embedding.cosine_distance(query_embedding)
        async with async_session_factory() as session:
            stmt = (
                select(Chunk, distance.label("distance"))
                .where(Chunk.embedding.is_not(None))
                .order_by(distance)
                .limit(top_k)
            )
            if document_id is not None:
                stmt = stmt.where(Chunk.document_id == document_id)

            result = await session.execute(stmt)
            rows = result.all()

        logger.debug(
            "Vector search returned %d rows (top_k=%d, doc_id=%s)",
            len(rows), top_k, document_id,
        )

        return [
            VectorSearchResult(
                chunk_id=chunk.id,
                content=chunk.content,
                page_number=chunk.page_number,
                similarity_score=round(1.0 - dist, 4),
                metadata=chunk.metadata_ or {},
            )
            for chunk, dist in rows
        ]


_store: PgVectorStore | None = None


def get_vector_store() -> PgVectorStore:
    global _store
    if _store is None:
        _store = PgVectorStore()
    return _store
