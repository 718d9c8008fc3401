# =============================================================================
# Solution 1 Routes — Hosted Vector Store + Responses API
# =============================================================================
#
#   POST   /api/solution1/upload                    upload PDF → new store
#   POST   /api/solution1/query                     file + web answers
#   GET    /api/solution1/config                    public config
#   GET    /api/solution1/vector-store/{id}         store info
#   GET    /api/solution1/vector-store/{id}/files   files in store
#   DELETE /api/solution1/vector-store/{id}         delete store
#   + history routes (app/api/history.py)
#
# Errors from OpenAI and missing configuration go through api_error(),
# giving {"detail": {type, message, context, timestamp}}.
# =============================================================================

from __future__ import annotations

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Path, UploadFile

from app.agents.hosted import ask_hosted
from app.api.deps import get_hosted_memory, read_pdf_upload
from app.api.history import add_history_routes
from app.config import settings
from app.models.requests import HostedQueryRequest, validate_vector_store_id
from app.models.responses import (
    HostedConfigResponse,
    HostedQueryResponse,
    UploadResponse,
    UsageInfo,
    VectorStoreFile,
    VectorStoreInfoResponse,
)
from app.services import hosted_store
from app.services.errors import InputValidationError, api_error
from app.services.memory import ConversationStore, Turn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/solution1", tags=["Solution 1 (hosted)"])

VectorStoreIdPath = Annotated[
    str, Path(description="Hosted vector store id (vs_...)"),
]


def _checked_store_id(vector_store_id: str) -> str:
    try:
        return validate_vector_store_id(vector_store_id)
    except ValueError as e:
        raise api_error(InputValidationError(str(e)), {"vector_store_id": vector_store_id}) from e


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload a PDF to a new hosted vector store",
    description=(
        "Uploads the PDF to OpenAI, creates a vector store named FK_<timestamp>, "
        "attaches the file and waits for indexing to finish."
    ),
)
async def upload(
    file: UploadFile = File(..., description="PDF file (max 10 MB)"),
) -> UploadResponse:
    data = await read_pdf_upload(file)
    try:
        result = await hosted_store.upload_document(file.filename or "upload.pdf", data)
    except Exception as e:
        raise api_error(e, {"operation": "upload", "filename": file.filename}) from e

    return UploadResponse(
        vector_store_id=result.vector_store_id,
        file_id=result.file_id,
        status=result.status,
        filename=result.filename,
    )


@router.post(
    "/query",
    response_model=HostedQueryResponse,
    summary="Ask a question (hosted file search + web search)",
    description=(
        "Runs a file_search call over the vector store and a web_search_preview "
        "call in parallel. Follow-up questions in the same thread are chained "
        "with previous_response_id."
    ),
)
async def query(
    request: HostedQueryRequest,
    memory: ConversationStore = Depends(get_hosted_memory),
) -> HostedQueryResponse:
    vector_store_id = request.vector_store_id or settings.vector_store_id
    if not vector_store_id:
        raise api_error(
            ValueError(
                "No vector store configured. Upload a PDF or set VECTOR_STORE_ID in .env"
            ),
            {"operation": "query"},
        )

    previous_response_id = memory.get_previous_response_id(request.thread_id)
    logger.info(
        "Hosted query: thread=%s, store=%s, query='%s'",
        request.thread_id, vector_store_id, request.query[:80],
    )

    start_time = time.monotonic()
    try:
        result = await ask_hosted(
            request.query,
            vector_store_id,
            previous_response_id=previous_response_id,
            include_web=request.include_web,
        )
    except Exception as e:
        raise api_error(
            e,
            {"operation": "query", "thread_id": request.thread_id,
             "vector_store_id": vector_store_id},
        ) from e
    response_time = round(time.monotonic() - start_time, 3)

    memory.save_turn(
        request.thread_id,
        Turn(
            query=request.query,
            file_answer=result.file_answer,
            web_answer=result.web_answer,
            usage=result.usage,
            timestamp=result.timestamp,
            response_id=result.file_response_id,
            model=result.model,
            response_time=response_time,
        ),
    )

    return HostedQueryResponse(
        query=request.query,
        thread_id=request.thread_id,
        file_answer=result.file_answer,
        web_answer=result.web_answer,
        file_response_id=result.file_response_id,
        web_response_id=result.web_response_id,
        model=result.model,
        usage=UsageInfo(**result.usage.to_dict()),
        response_time=response_time,
        timestamp=result.timestamp,
    )


@router.get(
    "/config",
    response_model=HostedConfigResponse,
    summary="Public configuration for the Solution 1 client",
)
async def config() -> HostedConfigResponse:
    return HostedConfigResponse(
        vector_store_id=settings.vector_store_id or None,
        model=settings.responses_model,
        configured=bool(settings.openai_api_key and settings.vector_store_id),
        max_query_length=settings.query_max_length,
        max_upload_bytes=settings.upload_max_bytes,
    )


@router.get(
    "/vector-store/{vector_store_id}",
    response_model=VectorStoreInfoResponse,
    summary="Hosted vector store details",
)
async def vector_store_info(vector_store_id: VectorStoreIdPath) -> VectorStoreInfoResponse:
    store_id = _checked_store_id(vector_store_id)
    try:
        info = await hosted_store.get_vector_store_info(store_id)
    except Exception as e:
        raise api_error(e, {"operation": "vector_store_info", "vector_store_id": store_id}) from e
    return VectorStoreInfoResponse(**info)


@router.get(
    "/vector-store/{vector_store_id}/files",
    response_model=list[VectorStoreFile],
    summary="Files attached to a hosted vector store",
)
async def vector_store_files(vector_store_id: VectorStoreIdPath) -> list[VectorStoreFile]:
    store_id = _checked_store_id(vector_store_id)
    try:
        files = await hosted_store.list_files(store_id)
    except Exception as e:
        raise api_error(e, {"operation": "list_files", "vector_store_id": store_id}) from e
    return [VectorStoreFile(**f) for f in files]


@router.delete(
    "/vector-store/{vector_store_id}",
    summary="Delete a hosted vector store",
)
async def delete_vector_store(vector_store_id: VectorStoreIdPath) -> dict:
    store_id = _checked_store_id(vector_store_id)
    try:
        deleted = await hosted_store.delete_vector_store(store_id)
    except Exception as e:
        raise api_error(e, {"operation": "delete_vector_store", "vector_store_id": store_id}) from e
    if not deleted:
        raise HTTPException(status_code=502, detail="Vector store was not deleted")
    return {"vector_store_id": store_id, "deleted": True}


add_history_routes(router, get_hosted_memory)
