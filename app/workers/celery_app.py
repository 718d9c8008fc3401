# =============================================================================
# Celery Application Configuration
# =============================================================================
#
# Background ingestion for Solution 2:
#   POST /api/solution2/ingest → Redis (db 0) → worker → Redis (db 1)
#
# Parsing a PDF with Docling and embedding a few hundred chunks takes far
# longer than a request should, so the API only stores the upload and
# returns a task id for polling.
#
# Run a worker with:
#   celery -A app.workers.celery_app worker --loglevel=info
# =============================================================================

from celery import Celery

from app.config import settings

celery_app = Celery(
    "app.workers",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    # JSON only: pickle can execute code during deserialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Re-queue the task if the worker dies mid-ingestion
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Ingestion tasks are long; one at a time per worker process
    worker_prefetch_multiplier=1,

    # Soft limit raises inside the task, hard limit kills it
    task_soft_time_limit=300,
    task_time_limit=600,

    # Keep results for an hour of polling
    result_expires=3600,
    task_track_started=True,

    include=["app.workers.tasks"],
)
