# =============================================================================
# Conversation Memory — In-Process History Cache
# =============================================================================
#
# Maps a session/thread id to the ordered list of question/answer turns
# asked under it. Used for history display and, in Solution 1, for chaining
# Responses API calls via previous_response_id.
#
# Not a durable store: everything is lost on restart, and the only eviction
# is cleanup_old_conversations(), called manually via the /cleanup routes.
#
# One ConversationStore per pipeline (hosted_memory, rag_memory) so the two
# solutions never see each other's threads.
# =============================================================================

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone

from app.services.pricing import TokenUsage

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class Turn:
    """One question/answer exchange."""

    query: str
    file_answer: str
    web_answer: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    timestamp: datetime = field(default_factory=_utcnow)
    response_id: str | None = None  # Responses API id (Solution 1 only)
    model: str | None = None
    response_time: float | None = None  # seconds

    def to_dict(self) -> dict:
        data = asdict(self)
        data["usage"] = self.usage.to_dict()
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class Conversation:
    thread_id: str
    turns: list[Turn] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    last_updated: datetime = field(default_factory=_utcnow)

    @property
    def total_usage(self) -> TokenUsage:
        return sum((t.usage for t in self.turns), TokenUsage())


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class ConversationStore:
    """
    Thread-safe in-memory map of thread_id → Conversation.

    FastAPI runs sync dependencies in a threadpool, so mutations take a lock.
    """

    def __init__(self, name: str = "memory") -> None:
        self.name = name
        self._conversations: dict[str, Conversation] = {}
        self._lock = threading.Lock()

    def save_turn(self, thread_id: str, turn: Turn) -> None:
        with self._lock:
            conversation = self._conversations.get(thread_id)
            if conversation is None:
                conversation = Conversation(thread_id=thread_id)
                self._conversations[thread_id] = conversation
            conversation.turns.append(turn)
            conversation.last_updated = _utcnow()
            count = len(conversation.turns)
        logger.debug("[%s] Saved turn %d for thread=%s", self.name, count, thread_id)

    def get_history(self, thread_id: str, limit: int | None = None) -> list[Turn]:
        """Turns oldest-first; with `limit`, only the most recent `limit`."""
        conversation = self._conversations.get(thread_id)
        if conversation is None:
            return []
        turns = list(conversation.turns)
        if limit is not None:
            turns = turns[-limit:] if limit > 0 else []
        return turns

    def get_previous_response_id(self, thread_id: str) -> str | None:
        conversation = self._conversations.get(thread_id)
        if not conversation or not conversation.turns:
            return None
        return conversation.turns[-1].response_id

    def get_summary(self, thread_id: str) -> dict:
        conversation = self._conversations.get(thread_id)
        if conversation is None:
            return {"exists": False, "thread_id": thread_id, "message_count": 0}
        return {
            "exists": True,
            "thread_id": thread_id,
            "message_count": len(conversation.turns),
            "created_at": conversation.created_at.isoformat(),
            "last_updated": conversation.last_updated.isoformat(),
            "total_usage": conversation.total_usage.to_dict(),
        }

    def clear_history(self, thread_id: str) -> bool:
        """Drop a thread. Returns False if it didn't exist."""
        with self._lock:
            removed = self._conversations.pop(thread_id, None) is not None
        if removed:
            logger.info("[%s] Cleared history for thread=%s", self.name, thread_id)
        return removed

    def active_threads(self) -> list[str]:
        return list(self._conversations)

    def get_statistics(self) -> dict:
        conversations = list(self._conversations.values())
        total_usage = sum((c.total_usage for c in conversations), TokenUsage())
        return {
            "active_threads": len(conversations),
            "total_messages": sum(len(c.turns) for c in conversations),
            "total_usage": total_usage.to_dict(),
        }

    def cleanup_old_conversations(self, max_age_hours: float = 24) -> int:
        """Evict threads not updated within `max_age_hours`. Returns count."""
        cutoff = _utcnow() - timedelta(hours=max_age_hours)
        with self._lock:
            stale = [
                thread_id
                for thread_id, conversation in self._conversations.items()
                if conversation.last_updated < cutoff
            ]
            for thread_id in stale:
                del self._conversations[thread_id]
        if stale:
            logger.info(
                "[%s] Evicted %d conversations older than %sh",
                self.name, len(stale), max_age_hours,
            )
        return len(stale)


# ---------------------------------------------------------------------------
# Module-level stores
# ---------------------------------------------------------------------------
hosted_memory = ConversationStore("solution1")
rag_memory = ConversationStore("solution2")
