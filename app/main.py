# =============================================================================
# FastAPI Application — FK Benefits Q&A
# =============================================================================
#
# Mounts both answer pipelines:
#   /api/solution1/*  hosted vector store + Responses API
#   /api/solution2/*  pgvector + Tavily + Gemini/OpenAI
#
# On startup the pgvector schema is created if the database is reachable.
# Solution 1 has no database dependency, so an unreachable database is
# logged and startup continues.
#
# Run with:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import hosted, rag
from app.config import settings
from app.db.engine import async_engine, init_db
from app.models.responses import HealthResponse

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Starting %s v%s (environment=%s)",
        settings.app_name, settings.app_version, settings.environment,
    )
    try:
        await init_db()
    except Exception as exc:
        logger.warning(
            "Database unavailable at startup, Solution 2 will fail until it is: %s",
            exc,
        )
    yield
    await async_engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "Questions about Försäkringskassan benefits, answered from the FK "
        "document plus live web search, via a hosted (Solution 1) and a "
        "self-hosted (Solution 2) RAG pipeline."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(hosted.router)
app.include_router(rag.router)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc),
        environment=settings.environment,
        version=settings.app_version,
        service=settings.app_name,
    )


@app.get("/", tags=["Root"])
async def root() -> dict:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
        "solutions": {
            "solution1": "/api/solution1",
            "solution2": "/api/solution2",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
