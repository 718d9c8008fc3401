# =============================================================================
# Hosted Vector Store — OpenAI File Search Storage (Solution 1)
# =============================================================================
#
# Solution 1 never chunks or embeds anything itself: the PDF is uploaded to
# OpenAI, attached to a hosted vector store, and OpenAI indexes it. This
# module wraps that lifecycle:
#
#   upload_document()      files.create → vector_stores.create →
#                          vector_stores.files.create → poll until indexed
#   get_vector_store_info()
#   list_files()
#   delete_vector_store()
#
# Indexing is asynchronous on OpenAI's side, so upload_document() polls the
# file status (settings.vector_store_poll_attempts × poll_interval, 30 × 2s
# by default). A failed file raises VectorStoreProcessingError, running out
# of polls raises VectorStoreTimeoutError.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from openai import AsyncOpenAI

from app.config import settings
from app.services.errors import VectorStoreProcessingError, VectorStoreTimeoutError
from app.services.retry import call_with_retry

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    vector_store_id: str
    file_id: str
    status: str
    filename: str


_client: AsyncOpenAI | None = None


def get_openai_client() -> AsyncOpenAI:
    """
    Lazily create the AsyncOpenAI client shared by Solution 1.

    SDK-level retries are off; call_with_retry() owns backoff.
    """
    global _client
    if _client is None:
        if not settings.openai_api_key:
            raise ValueError(
                "No OpenAI API key configured. Set OPENAI_API_KEY in .env"
            )
        _client = AsyncOpenAI(api_key=settings.openai_api_key, max_retries=0)
    return _client


async def upload_document(filename: str, data: bytes) -> UploadResult:
    """
    Upload a PDF into a fresh hosted vector store and wait for indexing.

    Raises:
        VectorStoreProcessingError: If OpenAI reports the file as failed or
            it isn't indexed within the polling window.
    """
    client = get_openai_client()

    uploaded = await call_with_retry(
        client.files.create,
        file=(filename, data, "application/pdf"),
        purpose="assistants",
    )
    logger.info("Uploaded %s as file_id=%s (%d bytes)", filename, uploaded.id, len(data))

    store = await call_with_retry(
        client.vector_stores.create, name=f"FK_{int(time.time())}",
    )
    logger.info("Created vector store %s (%s)", store.id, store.name)

    await call_with_retry(
        client.vector_stores.files.create,
        vector_store_id=store.id,
        file_id=uploaded.id,
    )

    status = await _wait_for_indexing(client, store.id, uploaded.id)
    return UploadResult(
        vector_store_id=store.id,
        file_id=uploaded.id,
        status=status,
        filename=filename,
    )


async def _wait_for_indexing(client: AsyncOpenAI, vector_store_id: str, file_id: str) -> str:
    attempts = settings.vector_store_poll_attempts
    for attempt in range(1, attempts + 1):
        vs_file = await call_with_retry(
            client.vector_stores.files.retrieve,
            file_id,
            vector_store_id=vector_store_id,
        )
        if vs_file.status == "completed":
            logger.info(
                "File %s indexed in %s after %d poll(s)",
                file_id, vector_store_id, attempt,
            )
            return vs_file.status
        if vs_file.status == "failed":
            reason = vs_file.last_error.message if vs_file.last_error else "unknown error"
            raise VectorStoreProcessingError(f"File processing failed: {reason}")

        logger.debug(
            "File %s status=%s (poll %d/%d)", file_id, vs_file.status, attempt, attempts,
        )
        await asyncio.sleep(settings.vector_store_poll_interval)

    raise VectorStoreTimeoutError("File processing timeout")


async def get_vector_store_info(vector_store_id: str) -> dict:
    client = get_openai_client()
    store = await call_with_retry(client.vector_stores.retrieve, vector_store_id)
    return {
        "id": store.id,
        "name": store.name,
        "status": store.status,
        "file_counts": store.file_counts.model_dump(),
        "created_at": store.created_at,
    }


async def list_files(vector_store_id: str) -> list[dict]:
    client = get_openai_client()
    page = await call_with_retry(
        client.vector_stores.files.list, vector_store_id=vector_store_id,
    )
    return [
        {"id": f.id, "status": f.status, "created_at": f.created_at}
        for f in page.data
    ]


async def delete_vector_store(vector_store_id: str) -> bool:
    client = get_openai_client()
    result = await call_with_retry(client.vector_stores.delete, vector_store_id)
    logger.info("Deleted vector store %s (deleted=%s)", vector_store_id, result.deleted)
    return bool(result.deleted)
