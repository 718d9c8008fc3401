# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# Validation rules shared by both pipelines:
#   query:            non-empty after trimming, ≤ 1000 chars, whitespace
#                     runs collapsed to a single space
#   thread_id:        [a-zA-Z0-9_-]+, "default" when omitted/blank
#   vector_store_id:  must start with "vs_" (OpenAI hosted store ids)
#
# Violations surface as FastAPI's standard 422 with the messages below.
# =============================================================================

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.config import settings

THREAD_ID_PATTERN = r"^[a-zA-Z0-9_-]+$"
DEFAULT_THREAD_ID = "default"

_WHITESPACE = re.compile(r"\s+")


def sanitize_query(value: str) -> str:
    """Trim and collapse internal whitespace runs to single spaces."""
    return _WHITESPACE.sub(" ", value).strip()


def validate_query(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Query cannot be empty")
    if len(value.strip()) > settings.query_max_length:
        raise ValueError(
            f"Query too long (max {settings.query_max_length} characters)"
        )
    return sanitize_query(value)


def validate_vector_store_id(value: str) -> str:
    if not value.startswith("vs_"):
        raise ValueError("Invalid vector store ID (must start with 'vs_')")
    return value


class QueryRequest(BaseModel):
    """
    Request body for POST /api/solution2/query.

    Example:
        {"query": "Hur länge kan man få föräldrapenning?", "thread_id": "anna-1"}
    """

    query: str = Field(
        ...,
        description="Question about Försäkringskassan benefits",
        examples=["Hur mycket är barnbidraget per månad?"],
    )
    thread_id: str = Field(
        default=DEFAULT_THREAD_ID,
        pattern=THREAD_ID_PATTERN,
        description="Conversation id used to group history. Defaults to 'default'.",
    )

    @field_validator("query", mode="before")
    @classmethod
    def _check_query(cls, value: object) -> str:
        return validate_query(value)

    @field_validator("thread_id", mode="before")
    @classmethod
    def _default_thread(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_THREAD_ID
        return value

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "query": "Vad är sjukpenninggrundande inkomst?",
                    "thread_id": "default",
                },
            ]
        }
    )


class HostedQueryRequest(QueryRequest):
    """
    Request body for POST /api/solution1/query.

    vector_store_id is optional; the configured VECTOR_STORE_ID is used
    when omitted.
    """

    vector_store_id: str | None = Field(
        default=None,
        description="Hosted vector store to search (vs_...).",
    )
    include_web: bool = Field(
        default=True,
        description="Also run the hosted web search call.",
    )

    @field_validator("vector_store_id")
    @classmethod
    def _check_vector_store_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return validate_vector_store_id(value)
