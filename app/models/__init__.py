# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
# Request/response schemas for the API. Kept apart from the ORM models in
# app/db/models.py so the public contract never exposes embeddings or
# internal columns.
# =============================================================================
