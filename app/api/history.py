# =============================================================================
# History Routes — shared by both solutions
# =============================================================================
#
# Each pipeline router calls add_history_routes() with its own memory
# dependency, yielding under its prefix:
#
#   GET    /history/{thread_id}?limit=N
#   DELETE /history/{thread_id}
#   GET    /statistics
#   POST   /cleanup?max_age_hours=H
# =============================================================================

from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, Depends, Query

from app.api.deps import ThreadIdPath
from app.config import settings
from app.models.responses import (
    CleanupResponse,
    ClearHistoryResponse,
    HistoryResponse,
    StatisticsResponse,
    TurnModel,
)
from app.services.memory import ConversationStore


def add_history_routes(
    router: APIRouter,
    get_memory: Callable[[], ConversationStore],
) -> None:
    @router.get(
        "/history/{thread_id}",
        response_model=HistoryResponse,
        summary="Get conversation history",
        description="Turns for a thread, oldest first. `limit` keeps the most recent N.",
    )
    async def get_history(
        thread_id: ThreadIdPath,
        limit: int | None = Query(default=None, ge=1, le=1000),
        memory: ConversationStore = Depends(get_memory),
    ) -> HistoryResponse:
        turns = memory.get_history(thread_id, limit=limit)
        return HistoryResponse(
            thread_id=thread_id,
            history=[TurnModel(**turn.to_dict()) for turn in turns],
            summary=memory.get_summary(thread_id),
        )

    @router.delete(
        "/history/{thread_id}",
        response_model=ClearHistoryResponse,
        summary="Clear conversation history",
    )
    async def clear_history(
        thread_id: ThreadIdPath,
        memory: ConversationStore = Depends(get_memory),
    ) -> ClearHistoryResponse:
        return ClearHistoryResponse(
            thread_id=thread_id,
            cleared=memory.clear_history(thread_id),
        )

    @router.get(
        "/statistics",
        response_model=StatisticsResponse,
        summary="Conversation memory statistics",
    )
    async def statistics(
        memory: ConversationStore = Depends(get_memory),
    ) -> StatisticsResponse:
        return StatisticsResponse(
            **memory.get_statistics(),
            threads=memory.active_threads(),
        )

    @router.post(
        "/cleanup",
        response_model=CleanupResponse,
        summary="Evict old conversations",
        description="Drops threads not updated within `max_age_hours` (default 24).",
    )
    async def cleanup(
        max_age_hours: float | None = Query(default=None, gt=0),
        memory: ConversationStore = Depends(get_memory),
    ) -> CleanupResponse:
        hours = max_age_hours or settings.history_max_age_hours
        return CleanupResponse(
            removed=memory.cleanup_old_conversations(hours),
            max_age_hours=hours,
        )
