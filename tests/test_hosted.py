# =============================================================================
# Unit Tests — Hosted Pipeline (Solution 1)
# =============================================================================
#
# The AsyncOpenAI client is replaced with mocks; no API key or network.
# =============================================================================

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.agents.hosted import ask_hosted
from app.config import settings
from app.services import hosted_store
from app.services.errors import VectorStoreProcessingError, VectorStoreTimeoutError


def _run(coro):
    return asyncio.run(coro)


def _response(response_id: str, text: str, input_tokens: int, output_tokens: int):
    return SimpleNamespace(
        id=response_id,
        output_text=text,
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


def _responses_client(file_response, web_response=None):
    """Mock client answering by tool type, independent of call order."""

    async def create(**kwargs):
        if kwargs["tools"][0]["type"] == "file_search":
            return file_response
        return web_response

    client = MagicMock()
    client.responses.create = AsyncMock(side_effect=create)
    return client


# ---------------------------------------------------------------------------
# ask_hosted
# ---------------------------------------------------------------------------


class TestAskHosted:
    def test_combines_file_and_web_answers(self):
        client = _responses_client(
            _response("resp_file", "Barnbidraget är 1 250 kr.", 1000, 100),
            _response("resp_web", "Enligt fk.se ...", 500, 50),
        )
        with patch("app.agents.hosted.get_openai_client", return_value=client):
            result = _run(ask_hosted("Hur mycket är barnbidraget?", "vs_123"))

        assert result.file_answer == "Barnbidraget är 1 250 kr."
        assert result.web_answer == "Enligt fk.se ..."
        assert result.file_response_id == "resp_file"
        assert result.web_response_id == "resp_web"
        assert client.responses.create.await_count == 2

    def test_usage_is_summed_and_priced(self):
        client = _responses_client(
            _response("resp_file", "a", 1_000_000, 0),
            _response("resp_web", "b", 0, 1_000_000),
        )
        with patch("app.agents.hosted.get_openai_client", return_value=client), \
             patch.object(settings, "responses_model", "gpt-4o-mini"):
            result = _run(ask_hosted("fråga", "vs_123"))

        assert result.usage.input_tokens == 1_000_000
        assert result.usage.output_tokens == 1_000_000
        assert result.usage.estimated_cost == pytest.approx(0.75)

    def test_file_search_request_shape(self):
        client = _responses_client(
            _response("resp_file", "a", 1, 1),
            _response("resp_web", "b", 1, 1),
        )
        with patch("app.agents.hosted.get_openai_client", return_value=client):
            _run(ask_hosted("fråga", "vs_abc", previous_response_id="resp_prev"))

        calls = [c.kwargs for c in client.responses.create.await_args_list]
        file_call = next(c for c in calls if c["tools"][0]["type"] == "file_search")
        web_call = next(c for c in calls if c["tools"][0]["type"] == "web_search_preview")

        assert file_call["tools"][0]["vector_store_ids"] == ["vs_abc"]
        assert file_call["previous_response_id"] == "resp_prev"
        assert file_call["store"] is True
        assert "previous_response_id" not in web_call

    def test_first_turn_is_not_chained(self):
        client = _responses_client(
            _response("resp_file", "a", 1, 1),
            _response("resp_web", "b", 1, 1),
        )
        with patch("app.agents.hosted.get_openai_client", return_value=client):
            _run(ask_hosted("fråga", "vs_abc"))

        for call in client.responses.create.await_args_list:
            assert "previous_response_id" not in call.kwargs

    def test_without_web_search(self):
        client = _responses_client(_response("resp_file", "svar", 10, 5))
        with patch("app.agents.hosted.get_openai_client", return_value=client):
            result = _run(ask_hosted("fråga", "vs_abc", include_web=False))

        assert client.responses.create.await_count == 1
        assert result.web_answer == ""
        assert result.web_response_id is None
        assert result.usage.total_tokens == 15


# ---------------------------------------------------------------------------
# Vector store lifecycle
# ---------------------------------------------------------------------------


def _store_client(*file_statuses):
    client = MagicMock()
    client.files.create = AsyncMock(return_value=SimpleNamespace(id="file_1"))
    client.vector_stores.create = AsyncMock(
        return_value=SimpleNamespace(id="vs_new", name="FK_1700000000"),
    )
    client.vector_stores.files.create = AsyncMock()
    client.vector_stores.files.retrieve = AsyncMock(side_effect=list(file_statuses))
    return client


def _file_status(status: str, error: str | None = None):
    last_error = SimpleNamespace(message=error) if error else None
    return SimpleNamespace(status=status, last_error=last_error)


class TestUploadDocument:
    def test_polls_until_completed(self):
        client = _store_client(
            _file_status("in_progress"),
            _file_status("in_progress"),
            _file_status("completed"),
        )
        with patch.object(hosted_store, "get_openai_client", return_value=client), \
             patch.object(settings, "vector_store_poll_interval", 0):
            result = _run(hosted_store.upload_document("FK.pdf", b"%PDF-1.4"))

        assert result.vector_store_id == "vs_new"
        assert result.file_id == "file_1"
        assert result.status == "completed"
        assert client.vector_stores.files.retrieve.await_count == 3
        assert client.files.create.await_args.kwargs["purpose"] == "assistants"
        assert client.vector_stores.create.await_args.kwargs["name"].startswith("FK_")

    def test_failed_indexing_raises(self):
        client = _store_client(_file_status("failed", "unsupported file"))
        with patch.object(hosted_store, "get_openai_client", return_value=client), \
             patch.object(settings, "vector_store_poll_interval", 0):
            with pytest.raises(VectorStoreProcessingError, match="unsupported file"):
                _run(hosted_store.upload_document("FK.pdf", b"%PDF-1.4"))

    def test_timeout_after_poll_attempts(self):
        client = _store_client(*[_file_status("in_progress")] * 3)
        with patch.object(hosted_store, "get_openai_client", return_value=client), \
             patch.object(settings, "vector_store_poll_interval", 0), \
             patch.object(settings, "vector_store_poll_attempts", 3):
            with pytest.raises(VectorStoreTimeoutError, match="timeout"):
                _run(hosted_store.upload_document("FK.pdf", b"%PDF-1.4"))


class TestStoreQueries:
    def test_vector_store_info(self):
        client = MagicMock()
        client.vector_stores.retrieve = AsyncMock(return_value=SimpleNamespace(
            id="vs_1",
            name="FK_1",
            status="completed",
            file_counts=SimpleNamespace(model_dump=lambda: {"completed": 1, "total": 1}),
            created_at=1700000000,
        ))
        with patch.object(hosted_store, "get_openai_client", return_value=client):
            info = _run(hosted_store.get_vector_store_info("vs_1"))

        assert info["id"] == "vs_1"
        assert info["file_counts"] == {"completed": 1, "total": 1}

    def test_list_files(self):
        client = MagicMock()
        client.vector_stores.files.list = AsyncMock(return_value=SimpleNamespace(data=[
            SimpleNamespace(id="file_1", status="completed", created_at=1),
        ]))
        with patch.object(hosted_store, "get_openai_client", return_value=client):
            files = _run(hosted_store.list_files("vs_1"))

        assert files == [{"id": "file_1", "status": "completed", "created_at": 1}]

    def test_delete_vector_store(self):
        client = MagicMock()
        client.vector_stores.delete = AsyncMock(return_value=SimpleNamespace(deleted=True))
        with patch.object(hosted_store, "get_openai_client", return_value=client):
            assert _run(hosted_store.delete_vector_store("vs_1")) is True

    def test_missing_api_key(self):
        with patch.object(hosted_store, "_client", None), \
             patch.object(settings, "openai_api_key", ""):
            with pytest.raises(ValueError, match="OPENAI_API_KEY"):
                hosted_store.get_openai_client()
