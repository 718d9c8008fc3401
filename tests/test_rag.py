# =============================================================================
# Unit Tests — Self-Hosted RAG Pipeline (Solution 2)
# =============================================================================
#
# Retrieval, web search, answer synthesis and the LangGraph orchestrator,
# with fake LLM providers and a fake vector store. No keys, no database.
# =============================================================================

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.agents.answer import (
    NO_CONTEXT_ANSWER,
    _format_context,
    generate_answer,
)
from app.agents.orchestrator import ask
from app.agents.retriever import RetrievalResult, RetrievedDocument, retrieve
from app.agents.web_search import WebResult, search_web
from app.services.embedder import QueryEmbedding
from app.services.llm import LLMResponse
from app.services.pricing import TokenUsage
from app.services.usage import UsageTracker, usage_tracker
from app.services.vectorstore import VectorSearchResult


def _run(coro):
    return asyncio.run(coro)


@dataclass
class FakeLLM:
    """LLM provider stand-in that records prompts."""

    model: str = "gemini-2.0-flash"
    provider_type: str = "openai_compatible"
    content: str = "Barnbidraget är 1 250 kronor per månad."
    error: Exception | None = None
    calls: list = field(default_factory=list)

    async def complete(self, messages, system=None, temperature=None, max_tokens=None):
        self.calls.append({"messages": messages, "system": system})
        if self.error is not None:
            raise self.error
        return LLMResponse(
            content=self.content, model=self.model, input_tokens=200, output_tokens=40,
        )


class FakeStore:
    def __init__(self, hits: list[VectorSearchResult]):
        self.hits = hits
        self.calls = []

    async def search(self, query_embedding, top_k=2, document_id=None):
        self.calls.append(top_k)
        return self.hits[:top_k]


def _doc(rank: int = 1, content: str = "Barnbidraget är 1 250 kr.", page: int | None = 2):
    return RetrievedDocument(
        id=rank, content=content, page_number=page, similarity=0.9, source="FK.pdf",
    )


def _hit(chunk_id: int, score: float, source: str | None = "FK.pdf"):
    return VectorSearchResult(
        chunk_id=chunk_id,
        content=f"chunk {chunk_id}",
        page_number=chunk_id,
        similarity_score=score,
        metadata={"source": source} if source else {},
    )


# ---------------------------------------------------------------------------
# Retriever
# ---------------------------------------------------------------------------


class TestRetrieve:
    def _embedding(self):
        return QueryEmbedding(
            vector=[0.1] * 4,
            usage=TokenUsage(input_tokens=12, estimated_cost=0.00000024),
        )

    def test_ranks_hits_from_one(self):
        store = FakeStore([_hit(7, 0.91), _hit(3, 0.85), _hit(9, 0.5)])
        with patch("app.agents.retriever.embed_query", AsyncMock(return_value=self._embedding())):
            result = _run(retrieve("Vad är barnbidraget?", top_k=2, store=store))

        assert [d.id for d in result.documents] == [1, 2]
        assert result.documents[0].content == "chunk 7"
        assert result.documents[0].similarity == 0.91
        assert result.top_document.page_number == 7
        assert store.calls == [2]

    def test_embedding_usage_reported(self):
        store = FakeStore([_hit(1, 0.8)])
        with patch("app.agents.retriever.embed_query", AsyncMock(return_value=self._embedding())):
            result = _run(retrieve("fråga", store=store))

        assert result.embedding_usage.input_tokens == 12

    def test_source_falls_back_to_default_name(self):
        store = FakeStore([_hit(1, 0.8, source=None)])
        with patch("app.agents.retriever.embed_query", AsyncMock(return_value=self._embedding())):
            result = _run(retrieve("fråga", store=store))

        assert result.documents[0].source == "FK.pdf"

    def test_empty_store(self):
        with patch("app.agents.retriever.embed_query", AsyncMock(return_value=self._embedding())):
            result = _run(retrieve("fråga", store=FakeStore([])))

        assert result.documents == []
        assert result.top_document is None


# ---------------------------------------------------------------------------
# Web search
# ---------------------------------------------------------------------------


class TestSearchWeb:
    def test_parses_results(self):
        client = MagicMock()
        client.search = AsyncMock(return_value={"results": [
            {"title": "Barnbidrag - FK", "url": "https://fk.se/barnbidrag", "content": "1 250 kr"},
            {"url": "https://example.se", "content": "annat"},
        ]})
        with patch("app.agents.web_search._get_client", return_value=client):
            results = _run(search_web("barnbidrag", max_results=2))

        assert [r.id for r in results] == [1, 2]
        assert results[0].title == "Barnbidrag - FK"
        assert results[1].title == "No title"
        client.search.assert_awaited_once_with("barnbidrag", max_results=2)

    def test_missing_key_returns_empty(self):
        with patch("app.agents.web_search._get_client", return_value=None):
            assert _run(search_web("barnbidrag")) == []

    def test_failure_returns_empty(self):
        client = MagicMock()
        client.search = AsyncMock(side_effect=RuntimeError("tavily down"))
        with patch("app.agents.web_search._get_client", return_value=client):
            assert _run(search_web("barnbidrag")) == []


# ---------------------------------------------------------------------------
# Answer synthesis
# ---------------------------------------------------------------------------


class TestGenerateAnswer:
    def test_no_documents_skips_llm(self):
        llm = FakeLLM()
        result = _run(generate_answer("fråga", [], llm))

        assert result.answer == NO_CONTEXT_ANSWER
        assert result.model == "n/a"
        assert result.cost == "free"
        assert llm.calls == []

    def test_primary_answer_is_free(self):
        llm = FakeLLM()
        result = _run(generate_answer("Hur mycket är barnbidraget?", [_doc()], llm))

        assert result.answer.startswith("Barnbidraget")
        assert result.model == "gemini-2.0-flash"
        assert result.cost == "free"
        assert result.fallback is False
        assert result.usage.estimated_cost == 0.0

    def test_prompt_contains_context_and_question(self):
        llm = FakeLLM()
        _run(generate_answer("Hur mycket är barnbidraget?", [_doc()], llm))

        prompt = llm.calls[0]["messages"][0]["content"]
        assert "Kontext:" in prompt
        assert "[1] (sida 2):\nBarnbidraget är 1 250 kr." in prompt
        assert "Fråga: Hur mycket är barnbidraget?" in prompt
        assert "Svara på svenska" in prompt

    def test_falls_back_on_primary_error(self):
        primary = FakeLLM(error=RuntimeError("quota exceeded"))
        fallback = FakeLLM(model="gpt-4o-mini", content="Svar från OpenAI.")
        result = _run(generate_answer("fråga", [_doc()], primary, fallback))

        assert result.answer == "Svar från OpenAI."
        assert result.model == "gpt-4o-mini"
        assert result.cost == "paid"
        assert result.fallback is True
        assert result.usage.estimated_cost > 0

    def test_primary_error_without_fallback_propagates(self):
        primary = FakeLLM(error=RuntimeError("quota exceeded"))
        with pytest.raises(RuntimeError, match="quota"):
            _run(generate_answer("fråga", [_doc()], primary))

    def test_fallback_error_propagates(self):
        primary = FakeLLM(error=RuntimeError("gemini down"))
        fallback = FakeLLM(model="gpt-4o-mini", error=RuntimeError("openai down"))
        with pytest.raises(RuntimeError, match="openai down"):
            _run(generate_answer("fråga", [_doc()], primary, fallback))

    def test_format_context_without_page(self):
        text = _format_context([_doc(1, "a", page=None), _doc(2, "b", page=5)])
        assert text == "[1]:\na\n\n[2] (sida 5):\nb"


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


def _retrieval(documents):
    return RetrievalResult(
        documents=documents,
        embedding_usage=TokenUsage(input_tokens=8, estimated_cost=0.00000016),
    )


class TestOrchestrator:
    def setup_method(self):
        usage_tracker.reset()

    def test_full_graph(self):
        web = [WebResult(id=1, title="FK", url="https://fk.se", content="webb")]
        with patch("app.agents.orchestrator.retrieve", AsyncMock(return_value=_retrieval([_doc()]))), \
             patch("app.agents.orchestrator.search_web", AsyncMock(return_value=web)):
            state = _run(ask("Hur mycket är barnbidraget?", llm=FakeLLM()))

        assert state["answer"].model == "gemini-2.0-flash"
        assert state["web_results"] == web
        assert state["retrieval"].top_document.content == "Barnbidraget är 1 250 kr."
        assert usage_tracker.snapshot()["free_calls"] == 1

    def test_web_results_not_in_prompt(self):
        llm = FakeLLM()
        web = [WebResult(id=1, title="FK", url="https://fk.se", content="WEBBTEXT")]
        with patch("app.agents.orchestrator.retrieve", AsyncMock(return_value=_retrieval([_doc()]))), \
             patch("app.agents.orchestrator.search_web", AsyncMock(return_value=web)):
            _run(ask("fråga", llm=llm))

        assert "WEBBTEXT" not in llm.calls[0]["messages"][0]["content"]

    def test_fallback_counted_as_paid(self):
        primary = FakeLLM(error=RuntimeError("429"))
        fallback = FakeLLM(model="gpt-4o-mini")
        with patch("app.agents.orchestrator.retrieve", AsyncMock(return_value=_retrieval([_doc()]))), \
             patch("app.agents.orchestrator.search_web", AsyncMock(return_value=[])):
            state = _run(ask("fråga", llm=primary, fallback=fallback))

        assert state["answer"].fallback is True
        snapshot = usage_tracker.snapshot()
        assert snapshot["paid_calls"] == 1
        assert snapshot["fallback_calls"] == 1

    def test_no_documents_not_counted(self):
        with patch("app.agents.orchestrator.retrieve", AsyncMock(return_value=_retrieval([]))), \
             patch("app.agents.orchestrator.search_web", AsyncMock(return_value=[])):
            state = _run(ask("fråga", llm=FakeLLM()))

        assert state["answer"].answer == NO_CONTEXT_ANSWER
        assert usage_tracker.snapshot()["total_calls"] == 0

    def test_missing_primary_uses_fallback(self):
        fallback = FakeLLM(model="gpt-4o-mini")
        with patch("app.agents.orchestrator.retrieve", AsyncMock(return_value=_retrieval([_doc()]))), \
             patch("app.agents.orchestrator.search_web", AsyncMock(return_value=[])), \
             patch("app.agents.orchestrator.get_llm_provider", side_effect=ValueError("no key")):
            state = _run(ask("fråga", fallback=fallback))

        assert state["answer"].model == "gpt-4o-mini"
        assert state["answer"].fallback is True

    def test_no_provider_at_all_raises(self):
        with patch("app.agents.orchestrator.retrieve", AsyncMock(return_value=_retrieval([_doc()]))), \
             patch("app.agents.orchestrator.search_web", AsyncMock(return_value=[])), \
             patch("app.agents.orchestrator.get_llm_provider", side_effect=ValueError("no key")), \
             patch("app.agents.orchestrator.get_fallback_provider", return_value=None):
            with pytest.raises(ValueError, match="No LLM configured"):
                _run(ask("fråga"))


# ---------------------------------------------------------------------------
# Usage tracker
# ---------------------------------------------------------------------------


class TestUsageTracker:
    def test_free_and_paid_buckets(self):
        tracker = UsageTracker()
        tracker.record("free", TokenUsage(100, 10, 0.0))
        tracker.record("paid", TokenUsage(100, 10, 0.002), fallback=True)
        tracker.record("paid", TokenUsage(50, 5, 0.001), fallback=True)

        snapshot = tracker.snapshot()
        assert snapshot["free_calls"] == 1
        assert snapshot["paid_calls"] == 2
        assert snapshot["fallback_calls"] == 2
        assert snapshot["total_calls"] == 3
        assert snapshot["paid_usage"]["input_tokens"] == 150
        assert snapshot["total_cost"] == pytest.approx(0.003)

    def test_reset(self):
        tracker = UsageTracker()
        tracker.record("free", TokenUsage(1, 1))
        tracker.reset()
        assert tracker.snapshot()["total_calls"] == 0


class TestOpenAICompatibleProvider:
    def test_system_prompt_sent_as_first_message(self):
        from app.services.llm import OpenAICompatibleProvider

        provider = OpenAICompatibleProvider(api_key="test", model="gemini-2.0-flash")
        completion = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="hej"))],
            model="gemini-2.0-flash",
            usage=SimpleNamespace(prompt_tokens=7, completion_tokens=2),
        )
        provider._client = MagicMock()
        provider._client.chat.completions.create = AsyncMock(return_value=completion)

        response = _run(provider.complete([{"role": "user", "content": "q"}], system="sys"))

        sent = provider._client.chat.completions.create.await_args.kwargs["messages"]
        assert sent[0] == {"role": "system", "content": "sys"}
        assert response.content == "hej"
        assert (response.input_tokens, response.output_tokens) == (7, 2)

    def test_missing_key_raises(self):
        from app.services.llm import OpenAICompatibleProvider

        with pytest.raises(ValueError, match="API key"):
            OpenAICompatibleProvider(api_key="", model="gpt-4o-mini")

    def test_sdk_retries_disabled(self):
        from app.services.llm import OpenAICompatibleProvider

        provider = OpenAICompatibleProvider(api_key="test", model="gemini-2.0-flash")
        assert provider._client.max_retries == 0

    def test_rate_limit_is_retried(self):
        import httpx
        import openai

        from app.config import settings
        from app.services.llm import OpenAICompatibleProvider

        provider = OpenAICompatibleProvider(api_key="test", model="gemini-2.0-flash")
        rate_limited = openai.RateLimitError(
            "quota",
            response=httpx.Response(429, request=httpx.Request("POST", "https://x")),
            body=None,
        )
        completion = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="hej"))],
            model="gemini-2.0-flash",
            usage=None,
        )
        provider._client = MagicMock()
        provider._client.chat.completions.create = AsyncMock(
            side_effect=[rate_limited, completion],
        )

        with patch.object(settings, "retry_base_delay", 0.0):
            response = _run(provider.complete([{"role": "user", "content": "q"}]))

        assert response.content == "hej"
        assert provider._client.chat.completions.create.await_count == 2


class TestAnthropicProvider:
    def test_sdk_retries_disabled(self):
        from app.services.llm import AnthropicProvider

        provider = AnthropicProvider(api_key="test", model="claude-haiku-4-5")
        assert provider._client.max_retries == 0

    def test_complete_goes_through_retry(self):
        from app.services.llm import AnthropicProvider

        provider = AnthropicProvider(api_key="test", model="claude-haiku-4-5")
        message = SimpleNamespace(
            content=[SimpleNamespace(type="text", text="svar")],
            model="claude-haiku-4-5",
            usage=SimpleNamespace(input_tokens=3, output_tokens=1),
        )
        with patch(
            "app.services.llm.call_with_retry", AsyncMock(return_value=message),
        ) as retry:
            response = _run(provider.complete([{"role": "user", "content": "q"}], system="s"))

        assert response.content == "svar"
        assert retry.await_args.args[0] == provider._client.messages.create
        assert retry.await_args.kwargs["system"] == "s"
