# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
#   - hosted.py: /api/solution1 (upload, query, config, vector-store admin)
#   - rag.py: /api/solution2 (query, initialize, usage, ingest)
#   - history.py: history/statistics/cleanup routes mounted on both
#   - deps.py: shared dependencies (memory stores, PDF upload checks)
# =============================================================================
