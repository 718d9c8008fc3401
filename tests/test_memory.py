# =============================================================================
# Unit Tests — Conversation Memory
# =============================================================================

from datetime import datetime, timedelta, timezone

from app.services.memory import ConversationStore, Turn
from app.services.pricing import TokenUsage


def _turn(query: str = "Hur mycket är barnbidraget?", **kwargs) -> Turn:
    defaults = {
        "file_answer": "1 250 kr per månad.",
        "web_answer": "",
        "usage": TokenUsage(input_tokens=100, output_tokens=20, estimated_cost=0.0001),
    }
    defaults.update(kwargs)
    return Turn(query=query, **defaults)


class TestSaveAndHistory:
    def test_unknown_thread_has_empty_history(self):
        assert ConversationStore().get_history("nope") == []

    def test_history_is_oldest_first(self):
        store = ConversationStore()
        store.save_turn("t1", _turn("first"))
        store.save_turn("t1", _turn("second"))
        assert [t.query for t in store.get_history("t1")] == ["first", "second"]

    def test_limit_keeps_most_recent(self):
        store = ConversationStore()
        for i in range(5):
            store.save_turn("t1", _turn(f"q{i}"))
        assert [t.query for t in store.get_history("t1", limit=2)] == ["q3", "q4"]

    def test_threads_are_isolated(self):
        store = ConversationStore()
        store.save_turn("a", _turn("for a"))
        store.save_turn("b", _turn("for b"))
        assert [t.query for t in store.get_history("a")] == ["for a"]


class TestPreviousResponseId:
    def test_none_for_new_thread(self):
        assert ConversationStore().get_previous_response_id("t") is None

    def test_returns_last_turns_id(self):
        store = ConversationStore()
        store.save_turn("t", _turn(response_id="resp_1"))
        store.save_turn("t", _turn(response_id="resp_2"))
        assert store.get_previous_response_id("t") == "resp_2"


class TestSummaryAndStatistics:
    def test_summary_for_unknown_thread(self):
        summary = ConversationStore().get_summary("x")
        assert summary["exists"] is False
        assert summary["message_count"] == 0

    def test_summary_totals_usage(self):
        store = ConversationStore()
        store.save_turn("t", _turn())
        store.save_turn("t", _turn())
        summary = store.get_summary("t")
        assert summary["exists"] is True
        assert summary["message_count"] == 2
        assert summary["total_usage"]["input_tokens"] == 200
        assert summary["total_usage"]["total_tokens"] == 240

    def test_statistics_across_threads(self):
        store = ConversationStore()
        store.save_turn("a", _turn())
        store.save_turn("b", _turn())
        store.save_turn("b", _turn())
        stats = store.get_statistics()
        assert stats["active_threads"] == 2
        assert stats["total_messages"] == 3
        assert stats["total_usage"]["output_tokens"] == 60
        assert sorted(store.active_threads()) == ["a", "b"]


class TestClearAndCleanup:
    def test_clear_reports_whether_removed(self):
        store = ConversationStore()
        store.save_turn("t", _turn())
        assert store.clear_history("t") is True
        assert store.clear_history("t") is False
        assert store.get_history("t") == []

    def test_cleanup_evicts_only_stale_threads(self):
        store = ConversationStore()
        store.save_turn("old", _turn())
        store.save_turn("fresh", _turn())
        store._conversations["old"].last_updated = datetime.now(timezone.utc) - timedelta(hours=25)

        removed = store.cleanup_old_conversations(max_age_hours=24)

        assert removed == 1
        assert store.active_threads() == ["fresh"]

    def test_cleanup_nothing_to_do(self):
        store = ConversationStore()
        store.save_turn("t", _turn())
        assert store.cleanup_old_conversations(24) == 0


class TestTurnSerialisation:
    def test_to_dict(self):
        ts = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        data = _turn(timestamp=ts, response_id="resp_1").to_dict()
        assert data["timestamp"] == ts.isoformat()
        assert data["usage"]["total_tokens"] == 120
        assert data["response_id"] == "resp_1"
