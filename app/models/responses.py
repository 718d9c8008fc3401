# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# What clients see. Internal dataclasses (HostedAnswer, RagState, Turn) are
# mapped onto these in the route handlers.
# =============================================================================

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health — confirms the API is running."""

    status: str = "ok"
    timestamp: datetime
    environment: str
    version: str
    service: str


class UsageInfo(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    estimated_cost: float = Field(default=0.0, description="Estimated cost in USD")


# ---------------------------------------------------------------------------
# Solution 1
# ---------------------------------------------------------------------------


class HostedQueryResponse(BaseModel):
    """Response for POST /api/solution1/query."""

    query: str
    thread_id: str
    file_answer: str = Field(description="Answer grounded on the hosted vector store")
    web_answer: str = Field(description="Answer from hosted web search")
    file_response_id: str
    web_response_id: str | None = None
    model: str
    usage: UsageInfo
    response_time: float = Field(description="Seconds spent answering")
    timestamp: datetime


class UploadResponse(BaseModel):
    """Response for POST /api/solution1/upload."""

    vector_store_id: str
    file_id: str
    status: str
    filename: str


class VectorStoreInfoResponse(BaseModel):
    id: str
    name: str | None = None
    status: str | None = None
    file_counts: dict
    created_at: int


class VectorStoreFile(BaseModel):
    id: str
    status: str
    created_at: int | None = None


class HostedConfigResponse(BaseModel):
    """Public, non-secret configuration for the Solution 1 client."""

    vector_store_id: str | None
    model: str
    configured: bool
    max_query_length: int
    max_upload_bytes: int


# ---------------------------------------------------------------------------
# Solution 2
# ---------------------------------------------------------------------------


class SourceDocument(BaseModel):
    """A retrieved FK chunk; `id` is its 1-based rank."""

    id: int
    content: str
    page_number: int | None = None
    similarity: float
    source: str
    metadata: dict = Field(default_factory=dict)


class WebResultModel(BaseModel):
    id: int
    title: str
    url: str
    content: str


class FileSearchWithLLM(BaseModel):
    answer: str
    model: str
    cost: str = Field(description="'free', 'paid' or 'unknown'")
    fallback: bool = Field(description="True if the fallback LLM produced the answer")
    source_document: SourceDocument | None = None
    total_documents: int


class WebSearchSummary(BaseModel):
    top_result: WebResultModel | None = None
    total_results: int


class RagQueryResponse(BaseModel):
    """Response for POST /api/solution2/query."""

    query: str
    thread_id: str
    file_search_with_llm: FileSearchWithLLM
    web_search: WebSearchSummary
    usage: UsageInfo = Field(description="Synthesis token usage")
    embedding_cost: UsageInfo = Field(description="Query embedding usage")
    response_time: float
    timestamp: datetime


class InitializeResponse(BaseModel):
    """Response for POST /api/solution2/initialize."""

    ready: bool
    chunk_count: int
    message: str


class IngestResponse(BaseModel):
    """
    Response for POST /api/solution2/ingest.

    The document is NOT immediately queryable; poll GET /ingest/{task_id}.
    """

    document_id: int
    filename: str
    status: str
    task_id: str | None = None
    message: str


class IngestStatusResponse(BaseModel):
    task_id: str
    status: str = Field(description="Celery state: PENDING, STARTED, SUCCESS, FAILURE, RETRY")
    result: dict | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# History (both solutions)
# ---------------------------------------------------------------------------


class TurnModel(BaseModel):
    query: str
    file_answer: str
    web_answer: str
    usage: UsageInfo
    timestamp: datetime
    response_id: str | None = None
    model: str | None = None
    response_time: float | None = None


class HistoryResponse(BaseModel):
    thread_id: str
    history: list[TurnModel]
    summary: dict


class ClearHistoryResponse(BaseModel):
    thread_id: str
    cleared: bool


class StatisticsResponse(BaseModel):
    active_threads: int
    total_messages: int
    total_usage: UsageInfo
    threads: list[str] = Field(default_factory=list)


class CleanupResponse(BaseModel):
    removed: int
    max_age_hours: float
