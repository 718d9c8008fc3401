# =============================================================================
# Error Classification — Upstream Exceptions → HTTP Responses
# =============================================================================
#
# Service code raises plain exceptions (provider SDK errors, ValueError for
# missing configuration, the few custom errors below). Route handlers pass
# whatever they catch through api_error(), which picks a type, a status
# code and a user-facing message:
#
#   openai.AuthenticationError   → AUTHENTICATION_ERROR  401
#   openai.RateLimitError        → RATE_LIMIT_ERROR      429
#   openai.NotFoundError         → NOT_FOUND_ERROR       404
#   openai.BadRequestError       → BAD_REQUEST_ERROR     400
#   openai.APITimeoutError       → TIMEOUT_ERROR         504
#   openai.APIConnectionError    → CONNECTION_ERROR      502
#   other openai.APIStatusError  → API_ERROR             502
#   FileTooLargeError            → FILE_SIZE_ERROR       413
#   FileNotFoundError            → FILE_NOT_FOUND_ERROR  404
#   InputValidationError         → VALIDATION_ERROR      400
#   VectorStoreTimeoutError      → TIMEOUT_ERROR         504
#   VectorStoreProcessingError   → API_ERROR             502
#   ValueError (config)          → CONFIGURATION_ERROR   503
#   anything else                → UNKNOWN_ERROR         500
#
# Response body:
#   {"detail": {"type", "message", "context", "timestamp"}}
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import openai
from fastapi import HTTPException

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Custom exceptions
# ---------------------------------------------------------------------------


class FileTooLargeError(Exception):
    """Upload exceeds settings.upload_max_bytes."""


class InputValidationError(Exception):
    """Request content failed a check that pydantic can't express."""


class VectorStoreProcessingError(Exception):
    """Hosted vector store failed to index a file."""


class VectorStoreTimeoutError(VectorStoreProcessingError):
    """File was still not indexed when polling gave up."""


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ErrorInfo:
    type: str
    message: str
    status_code: int


_MESSAGES = {
    "AUTHENTICATION_ERROR": (
        "Invalid API key. Please check your API key configuration."
    ),
    "RATE_LIMIT_ERROR": "Rate limit exceeded. Please try again later.",
    "NOT_FOUND_ERROR": (
        "Resource not found. The requested resource does not exist."
    ),
    "BAD_REQUEST_ERROR": "Bad request. Please check your input and try again.",
    "FILE_SIZE_ERROR": "File size exceeds the maximum allowed limit.",
    "FILE_NOT_FOUND_ERROR": "File not found. Please check the file path.",
    "CONNECTION_ERROR": "Could not connect to the upstream service.",
    "TIMEOUT_ERROR": "The upstream service timed out. Please try again.",
    "UNKNOWN_ERROR": "An unexpected error occurred. Please try again.",
}


def classify_error(exc: BaseException) -> ErrorInfo:
    """Map an exception to an ErrorInfo. Order matters: subclasses first."""
    if isinstance(exc, openai.AuthenticationError):
        return ErrorInfo("AUTHENTICATION_ERROR", _MESSAGES["AUTHENTICATION_ERROR"], 401)
    if isinstance(exc, openai.RateLimitError):
        return ErrorInfo("RATE_LIMIT_ERROR", _MESSAGES["RATE_LIMIT_ERROR"], 429)
    if isinstance(exc, openai.NotFoundError):
        return ErrorInfo("NOT_FOUND_ERROR", _MESSAGES["NOT_FOUND_ERROR"], 404)
    if isinstance(exc, openai.BadRequestError):
        return ErrorInfo("BAD_REQUEST_ERROR", _MESSAGES["BAD_REQUEST_ERROR"], 400)
    # APITimeoutError subclasses APIConnectionError
    if isinstance(exc, openai.APITimeoutError):
        return ErrorInfo("TIMEOUT_ERROR", _MESSAGES["TIMEOUT_ERROR"], 504)
    if isinstance(exc, openai.APIConnectionError):
        return ErrorInfo("CONNECTION_ERROR", _MESSAGES["CONNECTION_ERROR"], 502)
    if isinstance(exc, openai.APIStatusError):
        return ErrorInfo("API_ERROR", exc.message or "Upstream API error", 502)

    if isinstance(exc, FileTooLargeError):
        return ErrorInfo("FILE_SIZE_ERROR", _MESSAGES["FILE_SIZE_ERROR"], 413)
    if isinstance(exc, FileNotFoundError):
        return ErrorInfo("FILE_NOT_FOUND_ERROR", _MESSAGES["FILE_NOT_FOUND_ERROR"], 404)
    if isinstance(exc, InputValidationError):
        return ErrorInfo("VALIDATION_ERROR", str(exc) or "Validation failed", 400)
    if isinstance(exc, VectorStoreTimeoutError):
        return ErrorInfo("TIMEOUT_ERROR", str(exc), 504)
    if isinstance(exc, VectorStoreProcessingError):
        return ErrorInfo("API_ERROR", str(exc), 502)
    if isinstance(exc, TimeoutError):
        return ErrorInfo("TIMEOUT_ERROR", _MESSAGES["TIMEOUT_ERROR"], 504)
    if isinstance(exc, ConnectionError):
        return ErrorInfo("CONNECTION_ERROR", _MESSAGES["CONNECTION_ERROR"], 502)

    # Missing keys / bad config surface as ValueError from the providers
    if isinstance(exc, ValueError):
        return ErrorInfo("CONFIGURATION_ERROR", str(exc), 503)

    return ErrorInfo("UNKNOWN_ERROR", _MESSAGES["UNKNOWN_ERROR"], 500)


def api_error(exc: BaseException, context: dict | None = None) -> HTTPException:
    """
    Build the HTTPException a route should raise for `exc`.

    5xx errors are logged with a traceback; 4xx errors are the caller's
    problem and get a single warning line.
    """
    info = classify_error(exc)
    if info.status_code >= 500:
        logger.exception("%s: %s (context=%s)", info.type, exc, context)
    else:
        logger.warning("%s: %s (context=%s)", info.type, exc, context)

    return HTTPException(
        status_code=info.status_code,
        detail={
            "type": info.type,
            "message": info.message,
            "context": context or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
