# =============================================================================
# Retry / Backoff — Transient Upstream Failures
# =============================================================================
#
# Wraps calls to OpenAI, Gemini, Anthropic and the vector-store APIs with exponential
# backoff:
#
#   delay(n) = min(retry_base_delay * 2^n, retry_max_delay)
#
# Retried:      429 rate limits, 5xx, connection errors, timeouts
# Not retried:  400, 401, 403, 404, 422 and anything that isn't an
#               upstream API error (bugs should surface immediately)
#
# The SDK clients are created with max_retries=0 so retries happen here,
# in one place, with one log line per attempt.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import anthropic
import openai
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
)

from app.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NON_RETRYABLE_STATUS = {400, 401, 403, 404, 422}


def is_retryable(exc: BaseException) -> bool:
    """True for errors worth another attempt (OpenAI or Anthropic SDK)."""
    if isinstance(exc, (openai.APIConnectionError, anthropic.APIConnectionError)):
        return True
    if isinstance(exc, (openai.APIStatusError, anthropic.APIStatusError)):
        if exc.status_code in _NON_RETRYABLE_STATUS:
            return False
        return exc.status_code == 429 or exc.status_code >= 500
    return False


def backoff_delay(attempt: int) -> float:
    """Delay in seconds before retry number `attempt` (0-based)."""
    return min(settings.retry_base_delay * (2 ** attempt), settings.retry_max_delay)


def _wait(retry_state: RetryCallState) -> float:
    return backoff_delay(retry_state.attempt_number - 1)


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    *args,
    max_attempts: int | None = None,
    **kwargs,
) -> T:
    """
    Await `func(*args, **kwargs)`, retrying transient failures.

    The last exception is re-raised unchanged once attempts run out, so
    callers can still classify it (see app/services/errors.py).
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts or settings.max_retries),
        wait=_wait,
        retry=retry_if_exception(is_retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await func(*args, **kwargs)
    raise AssertionError("unreachable")  # pragma: no cover
