# =============================================================================
# Database Package
# =============================================================================
# Async + sync SQLAlchemy engines and the pgvector ORM models used by
# Solution 2.
#
# Key exports:
#   - get_async_session: FastAPI dependency for database sessions
#   - init_db / init_db_sync: create the vector extension and tables
#   - Document, Chunk: the ingested FK PDF and its embedded chunks
# =============================================================================
