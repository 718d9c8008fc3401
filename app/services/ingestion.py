# =============================================================================
# Ingestion Pipeline — PDF → chunks → embeddings → pgvector (Solution 2)
# =============================================================================
#
#   1. Mark document PROCESSING
#   2. Parse PDF with Docling
#   3. Chunk with tiktoken
#   4. Embed with OpenAI (batched)
#   5. Store chunks + embeddings in pgvector
#   6. Mark document COMPLETED (FAILED on error, then re-raise)
#
# Synchronous: called from the Celery task (app/workers/tasks.py) and from
# scripts/ingest_pdf.py, both of which use the sync engine.
# =============================================================================

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from sqlalchemy import select, update

from app.config import settings
from app.db.engine import get_sync_session
from app.db.models import Document, DocumentStatus
from app.services.chunker import chunk_document
from app.services.embedder import embed_batch
from app.services.parser import parse_pdf
from app.services.vectorstore import get_vector_store

logger = logging.getLogger(__name__)


def update_document_status(
    document_id: int,
    status: DocumentStatus,
    error_message: str | None = None,
    page_count: int | None = None,
) -> None:
    """Commit a status change in its own session so it survives pipeline failures."""
    values: dict = {"status": status}
    if error_message is not None:
        values["error_message"] = error_message
    if page_count is not None:
        values["page_count"] = page_count

    with get_sync_session() as session:
        session.execute(
            update(Document).where(Document.id == document_id).values(**values)
        )


def register_document(file_path: str, filename: str | None = None) -> tuple[int, bool]:
    """
    Find or create the Document row for a PDF on disk, keyed by sha256.

    Returns:
        (document_id, needs_ingestion). needs_ingestion is False only when
        an identical document was already ingested successfully; a FAILED
        or unfinished row is reused for another attempt.
    """
    data = Path(file_path).read_bytes()
    content_hash = hashlib.sha256(data).hexdigest()

    with get_sync_session() as session:
        existing = session.execute(
            select(Document).where(Document.content_hash == content_hash)
        ).scalar_one_or_none()
        if existing is not None:
            return existing.id, existing.status != DocumentStatus.COMPLETED

        doc = Document(
            filename=filename or Path(file_path).name,
            content_hash=content_hash,
            file_size=len(data),
            status=DocumentStatus.PENDING,
        )
        session.add(doc)
        session.flush()
        return doc.id, True


def run_ingestion(
    document_id: int,
    file_path: str,
    display_name: str | None = None,
    chunk_size: int | None = None,
    chunk_overlap: int | None = None,
    label: str = "ingest",
) -> dict:
    """
    Run the full pipeline for an already-registered document.

    Returns a summary dict. On failure the document is marked FAILED and
    the exception re-raised.
    """
    _chunk_size = settings.chunk_size if chunk_size is None else chunk_size
    _chunk_overlap = settings.chunk_overlap if chunk_overlap is None else chunk_overlap

    try:
        update_document_status(document_id, DocumentStatus.PROCESSING)

        logger.info("[%s] Step 2/5: Parsing PDF with Docling...", label)
        parsed_doc = parse_pdf(file_path, display_name=display_name)

        logger.info(
            "[%s] Step 3/5: Chunking text (size=%d, overlap=%d)...",
            label, _chunk_size, _chunk_overlap,
        )
        chunks = chunk_document(
            parsed_doc, chunk_size=_chunk_size, chunk_overlap=_chunk_overlap,
        )
        if not chunks:
            raise ValueError(
                "No chunks produced from document; PDF may be empty or unreadable"
            )

        logger.info(
            "[%s] Step 4/5: Generating embeddings for %d chunks (model=%s)...",
            label, len(chunks), settings.embedding_model,
        )
        embeddings = embed_batch([c.content for c in chunks])

        logger.info("[%s] Step 5/5: Storing chunks in pgvector...", label)
        chunk_ids = get_vector_store().add_chunks(
            document_id=document_id,
            contents=[c.content for c in chunks],
            embeddings=embeddings,
            metadatas=[
                {
                    "page_number": c.page_number,
                    "chunk_index": c.chunk_index,
                    "token_count": c.token_count,
                    **c.metadata,
                }
                for c in chunks
            ],
        )

        update_document_status(
            document_id, DocumentStatus.COMPLETED, page_count=parsed_doc.page_count,
        )
    except Exception as exc:
        logger.exception(
            "[%s] Ingestion failed for document_id=%d: %s", label, document_id, exc,
        )
        update_document_status(
            document_id, DocumentStatus.FAILED, error_message=str(exc)[:1000],
        )
        raise

    summary = {
        "document_id": document_id,
        "status": "completed",
        "chunk_count": len(chunk_ids),
        "page_count": parsed_doc.page_count,
        "chunk_size": _chunk_size,
        "chunk_overlap": _chunk_overlap,
    }
    logger.info("[%s] Ingestion complete: %s", label, summary)
    return summary
