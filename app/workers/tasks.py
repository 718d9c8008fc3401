# =============================================================================
# Celery Task Definitions — Document Ingestion
# =============================================================================
#
# ingest_document wraps app/services/ingestion.run_ingestion() with Celery
# retries. Workers are synchronous: the pipeline uses the sync engine and
# the sync embedding client.
#
# RETRY STRATEGY:
# max_retries=3, countdown 60s · 2^n (60s, 120s, 240s). Transient errors
# (rate limits, DB drops) recover; corrupt PDFs exhaust retries and stay
# FAILED.
# =============================================================================

import logging

from app.services.ingestion import run_ingestion
from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="ingest_document",
    max_retries=3,
    default_retry_delay=60,
)
def ingest_document(
    self,
    document_id: int,
    file_path: str,
    filename: str | None = None,
    chunk_size: int | None = None,
    chunk_overlap: int | None = None,
) -> dict:
    """Parse, chunk, embed and store an uploaded PDF."""
    task_id = self.request.id
    logger.info(
        "Starting ingestion: document_id=%d, file=%s, task_id=%s",
        document_id, file_path, task_id,
    )
    try:
        return run_ingestion(
            document_id,
            file_path,
            display_name=filename,
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            label=task_id or "ingest",
        )
    except Exception as exc:
        countdown = self.default_retry_delay * (2 ** self.request.retries)
        raise self.retry(exc=exc, countdown=countdown)
