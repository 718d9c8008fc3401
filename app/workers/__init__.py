# =============================================================================
# Workers Package — Celery Background Tasks
# =============================================================================
#   - celery_app.py: Celery application configuration
#   - tasks.py: ingest_document (parse → chunk → embed → store)
#
# Parsing and embedding a PDF takes far longer than a request should, so
# POST /api/solution2/ingest returns a task_id and the worker does the rest.
# =============================================================================
