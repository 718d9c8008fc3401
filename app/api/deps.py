# =============================================================================
# Shared API Dependencies
# =============================================================================
#
#   get_hosted_memory / get_rag_memory — per-pipeline history stores,
#       overridable in tests via app.dependency_overrides
#   ThreadIdPath — validated {thread_id} path parameter
#   read_pdf_upload() — type / emptiness / size checks for PDF uploads
# =============================================================================

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Path, UploadFile

from app.config import settings
from app.models.requests import THREAD_ID_PATTERN
from app.services.errors import FileTooLargeError, InputValidationError, api_error
from app.services.memory import ConversationStore, hosted_memory, rag_memory

logger = logging.getLogger(__name__)

ThreadIdPath = Annotated[
    str,
    Path(
        pattern=THREAD_ID_PATTERN,
        max_length=128,
        description="Conversation id ([a-zA-Z0-9_-]+)",
    ),
]


def get_hosted_memory() -> ConversationStore:
    return hosted_memory


def get_rag_memory() -> ConversationStore:
    return rag_memory


async def read_pdf_upload(file: UploadFile) -> bytes:
    """
    Read an uploaded PDF into memory after validating it.

    Raises:
        HTTPException: 400 for a non-PDF or empty file, 413 when the file
            exceeds settings.upload_max_bytes.
    """
    filename = file.filename or ""
    is_pdf = (
        file.content_type == "application/pdf"
        or filename.lower().endswith(".pdf")
    )
    context = {"filename": filename}
    if not is_pdf:
        raise api_error(
            InputValidationError("Only PDF files are accepted. Please upload a .pdf file."),
            context,
        )

    # Read one byte past the limit so oversize files are detected without
    # buffering the whole thing
    data = await file.read(settings.upload_max_bytes + 1)
    if not data:
        raise api_error(InputValidationError("Uploaded file is empty."), context)
    if len(data) > settings.upload_max_bytes:
        raise api_error(FileTooLargeError(filename), context)

    logger.info("Received upload %s (%d bytes)", filename, len(data))
    return data
