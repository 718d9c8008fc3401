# =============================================================================
# Solution 2 Routes — Self-Hosted RAG (pgvector + Tavily + Gemini/OpenAI)
# =============================================================================
#
#   POST /api/solution2/query              RAG answer + web results
#   POST /api/solution2/initialize         readiness: are embeddings stored?
#   GET  /api/solution2/usage              free vs paid generation calls
#   POST /api/solution2/ingest             upload PDF → Celery ingestion (202)
#   GET  /api/solution2/ingest/{task_id}   ingestion task status
#   + history routes (app/api/history.py)
# =============================================================================

from __future__ import annotations

import hashlib
import logging
import time
from datetime import datetime, timezone
from pathlib import Path

from celery.result import AsyncResult
from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.agents.orchestrator import RagState, ask
from app.api.deps import get_rag_memory, read_pdf_upload
from app.api.history import add_history_routes
from app.config import settings
from app.db.engine import count_embedded_chunks, get_async_session
from app.db.models import Document, DocumentStatus
from app.models.requests import QueryRequest
from app.models.responses import (
    FileSearchWithLLM,
    IngestResponse,
    IngestStatusResponse,
    InitializeResponse,
    RagQueryResponse,
    SourceDocument,
    UsageInfo,
    WebResultModel,
    WebSearchSummary,
)
from app.services.errors import api_error
from app.services.memory import ConversationStore, Turn
from app.services.usage import usage_tracker
from app.workers.tasks import ingest_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/solution2", tags=["Solution 2 (self-hosted RAG)"])


def _build_response(
    request: QueryRequest,
    state: RagState,
    response_time: float,
) -> RagQueryResponse:
    retrieval = state["retrieval"]
    answer = state["answer"]
    web_results = state.get("web_results", [])
    top_doc = retrieval.top_document

    return RagQueryResponse(
        query=request.query,
        thread_id=request.thread_id,
        file_search_with_llm=FileSearchWithLLM(
            answer=answer.answer,
            model=answer.model,
            cost=answer.cost,
            fallback=answer.fallback,
            source_document=SourceDocument(**top_doc.to_dict()) if top_doc else None,
            total_documents=len(retrieval.documents),
        ),
        web_search=WebSearchSummary(
            top_result=WebResultModel(**web_results[0].to_dict()) if web_results else None,
            total_results=len(web_results),
        ),
        usage=UsageInfo(**answer.usage.to_dict()),
        embedding_cost=UsageInfo(**retrieval.embedding_usage.to_dict()),
        response_time=response_time,
        timestamp=datetime.now(timezone.utc),
    )


@router.post(
    "/query",
    response_model=RagQueryResponse,
    summary="Ask a question (pgvector RAG + Tavily web search)",
    description=(
        "Embeds the question, retrieves the closest FK.pdf chunks and searches "
        "the web in parallel, then answers in Swedish from the retrieved chunks "
        "(Gemini, falling back to gpt-4o-mini)."
    ),
)
async def query(
    request: QueryRequest,
    memory: ConversationStore = Depends(get_rag_memory),
) -> RagQueryResponse:
    logger.info(
        "RAG query: thread=%s, query='%s'", request.thread_id, request.query[:80],
    )

    start_time = time.monotonic()
    try:
        state = await ask(request.query)
    except Exception as e:
        raise api_error(e, {"operation": "query", "thread_id": request.thread_id}) from e
    response_time = round(time.monotonic() - start_time, 3)

    response = _build_response(request, state, response_time)
    answer = state["answer"]
    web_top = response.web_search.top_result

    memory.save_turn(
        request.thread_id,
        Turn(
            query=request.query,
            file_answer=answer.answer,
            web_answer=web_top.content if web_top else "",
            usage=answer.usage + state["retrieval"].embedding_usage,
            timestamp=response.timestamp,
            model=answer.model,
            response_time=response_time,
        ),
    )
    return response


@router.post(
    "/initialize",
    response_model=InitializeResponse,
    summary="Check that document embeddings are available",
)
async def initialize(
    session: AsyncSession = Depends(get_async_session),
) -> InitializeResponse:
    try:
        chunk_count = await count_embedded_chunks(session)
    except Exception as e:
        raise api_error(e, {"operation": "initialize"}) from e

    if chunk_count == 0:
        message = (
            "No embeddings found. Run scripts/ingest_pdf.py or POST a PDF to "
            "/api/solution2/ingest first."
        )
    else:
        message = f"Ready: {chunk_count} embedded chunks available."
    logger.info("Initialize check: %d embedded chunks", chunk_count)
    return InitializeResponse(ready=chunk_count > 0, chunk_count=chunk_count, message=message)


@router.get(
    "/usage",
    summary="Generation usage: free (Gemini) vs paid (OpenAI fallback) calls",
)
async def usage() -> dict:
    return {
        **usage_tracker.snapshot(),
        "free_model": settings.llm_model,
        "paid_model": settings.llm_fallback_model,
    }


@router.post(
    "/ingest",
    response_model=IngestResponse,
    status_code=202,
    summary="Upload a PDF for background ingestion",
    description=(
        "Saves the PDF and dispatches a Celery task that parses, chunks, embeds "
        "and stores it. Identical files (same sha256) are not ingested twice."
    ),
)
async def ingest(
    file: UploadFile = File(..., description="PDF file (max 10 MB)"),
    session: AsyncSession = Depends(get_async_session),
) -> IngestResponse:
    data = await read_pdf_upload(file)
    filename = file.filename or settings.default_source_name
    content_hash = hashlib.sha256(data).hexdigest()

    doc = (
        await session.execute(select(Document).where(Document.content_hash == content_hash))
    ).scalar_one_or_none()
    if doc is not None and doc.status == DocumentStatus.COMPLETED:
        logger.info(
            "Skipping duplicate upload %s (document_id=%d)", filename, doc.id,
        )
        return IngestResponse(
            document_id=doc.id,
            filename=doc.filename,
            status=doc.status.value,
            task_id=doc.celery_task_id,
            message="Document already ingested; nothing to do.",
        )

    if doc is None:
        doc = Document(
            filename=filename,
            content_hash=content_hash,
            file_size=len(data),
            status=DocumentStatus.PENDING,
        )
        session.add(doc)
        await session.flush()
    else:
        # FAILED or never-dispatched row: try again with the same id
        logger.info(
            "Re-ingesting %s (document_id=%d, previous status=%s)",
            filename, doc.id, doc.status.value,
        )
        doc.status = DocumentStatus.PENDING
        doc.error_message = None

    file_path = _save_upload(doc.id, filename, data)

    # The worker reads the row from its own session
    await session.commit()

    try:
        task = ingest_document.delay(
            document_id=doc.id, file_path=str(file_path), filename=filename,
        )
    except Exception as e:
        doc.status = DocumentStatus.FAILED
        doc.error_message = f"Could not dispatch ingestion task: {e}"[:1000]
        await session.commit()
        raise api_error(e, {"operation": "ingest", "document_id": doc.id}) from e
    doc.celery_task_id = task.id

    logger.info("Dispatched ingestion: document_id=%d, task_id=%s", doc.id, task.id)
    return IngestResponse(
        document_id=doc.id,
        filename=filename,
        status="processing",
        task_id=task.id,
        message=f"Document '{filename}' uploaded. Ingestion in progress.",
    )


def _save_upload(document_id: int, filename: str, data: bytes) -> Path:
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    file_path = upload_dir / f"{document_id}_{Path(filename).name}"
    file_path.write_bytes(data)
    return file_path


@router.get(
    "/ingest/{task_id}",
    response_model=IngestStatusResponse,
    summary="Check ingestion task status",
)
async def ingest_status(task_id: str) -> IngestStatusResponse:
    result = AsyncResult(task_id, app=ingest_document.app)
    status = result.status

    payload: dict | None = None
    error: str | None = None
    if status == "SUCCESS":
        payload = result.result or {}
    elif status == "FAILURE":
        error = str(result.result) if result.result else "Unknown error"

    return IngestStatusResponse(task_id=task_id, status=status, result=payload, error=error)


add_history_routes(router, get_rag_memory)
