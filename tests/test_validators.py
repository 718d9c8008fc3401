# =============================================================================
# Unit Tests — Request Validation
# =============================================================================

import pytest
from pydantic import ValidationError

from app.models.requests import (
    DEFAULT_THREAD_ID,
    HostedQueryRequest,
    QueryRequest,
    sanitize_query,
)


class TestQuery:
    def test_whitespace_is_collapsed(self):
        req = QueryRequest(query="  Hur   mycket\n\när   barnbidraget?  ")
        assert req.query == "Hur mycket är barnbidraget?"

    def test_empty_query_rejected(self):
        with pytest.raises(ValidationError, match="Query cannot be empty"):
            QueryRequest(query="   ")

    def test_query_at_limit_accepted(self):
        assert len(QueryRequest(query="a" * 1000).query) == 1000

    def test_query_over_limit_rejected(self):
        with pytest.raises(ValidationError, match="Query too long"):
            QueryRequest(query="a" * 1001)

    def test_sanitize_query(self):
        assert sanitize_query("\tett  två ") == "ett två"


class TestThreadId:
    def test_defaults_when_missing(self):
        assert QueryRequest(query="fråga").thread_id == DEFAULT_THREAD_ID

    def test_blank_becomes_default(self):
        assert QueryRequest(query="fråga", thread_id="  ").thread_id == "default"

    def test_none_becomes_default(self):
        assert QueryRequest(query="fråga", thread_id=None).thread_id == "default"

    @pytest.mark.parametrize("thread_id", ["user-1", "abc_DEF", "42"])
    def test_valid_ids(self, thread_id):
        assert QueryRequest(query="fråga", thread_id=thread_id).thread_id == thread_id

    @pytest.mark.parametrize("thread_id", ["has space", "semi;colon", "../etc"])
    def test_invalid_ids(self, thread_id):
        with pytest.raises(ValidationError):
            QueryRequest(query="fråga", thread_id=thread_id)


class TestHostedQueryRequest:
    def test_vector_store_id_optional(self):
        req = HostedQueryRequest(query="fråga")
        assert req.vector_store_id is None
        assert req.include_web is True

    def test_vector_store_id_prefix_checked(self):
        with pytest.raises(ValidationError, match="vs_"):
            HostedQueryRequest(query="fråga", vector_store_id="store_123")

    def test_valid_vector_store_id(self):
        req = HostedQueryRequest(query="fråga", vector_store_id="vs_abc")
        assert req.vector_store_id == "vs_abc"
