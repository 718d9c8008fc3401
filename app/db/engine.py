# =============================================================================
# Database Engine & Session Management
# =============================================================================
#
# Two engines against the same Postgres + pgvector database:
#   - async (asyncpg): FastAPI request path (vector search, readiness check)
#   - sync (psycopg2): Celery ingestion task and scripts/ingest_pdf.py
#
# Sessions:
#   - get_async_session(): FastAPI dependency, commits on exit
#   - async_session_factory(): for code outside a request (must commit itself)
#   - get_sync_session(): context manager for workers and scripts
#
# init_db() creates the `vector` extension and all tables. It runs on app
# startup and from the ingestion script, and is idempotent.
# =============================================================================

import logging
from collections.abc import AsyncGenerator, Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, func, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import settings
from app.db.models import Base, Chunk

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Async Engine
# ---------------------------------------------------------------------------
# No connection is opened until first use, so importing this module is safe
# without a running database.
# ---------------------------------------------------------------------------
async_engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_size=5,
    max_overflow=10,
)

# expire_on_commit=False: attribute access after commit must not trigger
# a lazy reload outside the session.
async_session_factory = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Sync Engine — Lazy (psycopg2 only needed by workers and scripts)
# ---------------------------------------------------------------------------

_sync_engine = None
_sync_session_factory = None


def _get_sync_engine():
    """Lazily create and cache the sync SQLAlchemy engine."""
    global _sync_engine
    if _sync_engine is None:
        _sync_engine = create_engine(
            settings.database_url_sync,
            echo=settings.debug,
            pool_size=5,
            max_overflow=10,
        )
    return _sync_engine


def _get_sync_session_factory():
    global _sync_session_factory
    if _sync_session_factory is None:
        _sync_session_factory = sessionmaker(
            bind=_get_sync_engine(),
            class_=Session,
            expire_on_commit=False,
        )
    return _sync_session_factory


@contextmanager
def get_sync_session() -> Generator[Session, None, None]:
    """
    Sync session for workers and scripts.

        with get_sync_session() as session:
            doc = session.get(Document, document_id)
            doc.status = DocumentStatus.COMPLETED
            # commits on exit, rolls back on exception
    """
    factory = _get_sync_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that provides a database session per request."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ---------------------------------------------------------------------------
# Schema bootstrap
# ---------------------------------------------------------------------------


async def init_db() -> None:
    """Create the pgvector extension and all tables if missing."""
    async with async_engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


def init_db_sync() -> None:
    """Sync twin of init_db() for scripts and workers."""
    with _get_sync_engine().begin() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        Base.metadata.create_all(conn)
    logger.info("Database schema ready (sync)")


async def count_embedded_chunks(session: AsyncSession) -> int:
    """Number of chunks with an embedding, i.e. searchable rows."""
    result = await session.execute(
        select(func.count(Chunk.id)).where(Chunk.embedding.is_not(None))
    )
    return int(result.scalar_one())
