# =============================================================================
# Multi-Provider LLM Abstraction — Primary + Fallback Synthesis
# =============================================================================
#
# Common interface for chat completions used by the Solution 2 answer step.
#
# The default wiring is:
#   primary  = Gemini via Google's OpenAI-compatible endpoint (free tier)
#   fallback = OpenAI gpt-4o-mini (paid), used when the primary raises
#
# Native SDKs (openai, anthropic) rather than LangChain wrappers: fewer
# layers, direct control over request parameters. SDK retries are off;
# each completion goes through call_with_retry() so a 429 is retried with
# backoff before the fallback provider takes over.
#
# ARCHITECTURE:
#   LLMProvider (Protocol)
#   ├── AnthropicProvider        — Claude via native Anthropic SDK
#   ├── OpenAICompatibleProvider — Gemini, OpenAI, any OpenAI-compatible API
#   ├── get_llm_provider()       — primary singleton, reads from config
#   └── get_fallback_provider()  — fallback singleton (None when disabled)
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from app.config import settings
from app.services.retry import call_with_retry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class LLMResponse:
    """
    Standardised response from any LLM provider.

    Normalises Anthropic and OpenAI response formats into one structure.
    """

    content: str           # The generated text
    model: str             # Model identifier (e.g., "gemini-2.0-flash")
    input_tokens: int      # Tokens consumed by the prompt
    output_tokens: int     # Tokens generated in the response


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class LLMProvider(Protocol):
    """
    Protocol defining the LLM provider interface.

    provider_type is the pricing-registry prefix ("anthropic" or
    "openai_compatible"), so callers can cost a response without knowing
    the concrete class.
    """

    provider_type: str

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation messages as dicts with "role" and "content".
                Roles: "user", "assistant" (no "system", use the system param).
            system: System prompt. Anthropic takes it as a top-level kwarg,
                OpenAI-compatible APIs as the first message.
            temperature: Override sampling temperature (default from config).
            max_tokens: Override max output tokens (default from config).
        """
        ...


# ---------------------------------------------------------------------------
# Implementation 1: Anthropic (Claude)
# ---------------------------------------------------------------------------


class AnthropicProvider:
    """
    Anthropic Claude provider using the native SDK.

    KEY API DIFFERENCE: Anthropic takes system prompts as a top-level
    `system=` kwarg, NOT as a message with role "system".
    """

    provider_type = "anthropic"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        from anthropic import AsyncAnthropic

        resolved_key = api_key or settings.anthropic_api_key
        if not resolved_key:
            raise ValueError(
                "No Anthropic API key configured. Set ANTHROPIC_API_KEY in .env"
            )

        self._client = AsyncAnthropic(api_key=resolved_key, max_retries=0)
        self.model = model or settings.llm_model
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info("Initialized AnthropicProvider (model=%s)", self.model)

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion using Claude."""
        kwargs: dict = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": (
                self._temperature if temperature is None else temperature
            ),
        }
        if system:
            kwargs["system"] = system

        response = await call_with_retry(self._client.messages.create, **kwargs)

        content = ""
        for block in response.content:
            if block.type == "text":
                content = block.text
                break

        return LLMResponse(
            content=content,
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )


# ---------------------------------------------------------------------------
# Implementation 2: OpenAI-Compatible (Gemini, OpenAI)
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """
    Provider for any API that follows the OpenAI chat-completions spec.

    Gemini is reached through Google's compatibility layer:
        LLM_BASE_URL=https://generativelanguage.googleapis.com/v1beta/openai/
        LLM_API_KEY=<google key>   (GOOGLE_API_KEY also accepted)
        LLM_MODEL=gemini-2.0-flash

    A base_url of None targets api.openai.com.
    """

    provider_type = "openai_compatible"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
    ) -> None:
        from openai import AsyncOpenAI

        if not api_key:
            raise ValueError(
                f"No API key configured for model '{model}'. "
                "Set LLM_API_KEY / OPENAI_API_KEY in .env"
            )

        client_kwargs: dict = {"api_key": api_key, "max_retries": 0}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = AsyncOpenAI(**client_kwargs)
        self.model = model
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info(
            "Initialized OpenAICompatibleProvider (model=%s, base_url=%s)",
            self.model,
            base_url or "https://api.openai.com/v1",
        )

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion using an OpenAI-compatible API."""
        all_messages: list[dict[str, str]] = []
        if system:
            all_messages.append({"role": "system", "content": system})
        all_messages.extend(messages)

        response = await call_with_retry(
            self._client.chat.completions.create,
            model=self.model,
            messages=all_messages,
            max_tokens=max_tokens or self._max_tokens,
            temperature=self._temperature if temperature is None else temperature,
        )

        content = response.choices[0].message.content or ""

        usage = response.usage
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0

        return LLMResponse(
            content=content,
            model=response.model or self.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

_KNOWN_PROVIDER_TYPES = {"anthropic", "openai_compatible"}


def create_provider(
    provider_type: str,
    model: str,
    api_key: str | None,
    base_url: str | None = None,
) -> AnthropicProvider | OpenAICompatibleProvider:
    """
    Build a fresh provider instance.

    Raises:
        ValueError: If provider_type is unknown or the API key is missing.
    """
    if provider_type not in _KNOWN_PROVIDER_TYPES:
        raise ValueError(
            f"Unknown provider type '{provider_type}'. "
            f"Supported types: {sorted(_KNOWN_PROVIDER_TYPES)}"
        )
    if provider_type == "anthropic":
        return AnthropicProvider(api_key=api_key, model=model)
    return OpenAICompatibleProvider(
        api_key=api_key or "", model=model, base_url=base_url,
    )


# Lazy singletons — avoid re-creating clients on every request
_provider: AnthropicProvider | OpenAICompatibleProvider | None = None
_fallback: AnthropicProvider | OpenAICompatibleProvider | None = None


def get_llm_provider() -> AnthropicProvider | OpenAICompatibleProvider:
    """Return the primary synthesis provider (Gemini by default)."""
    global _provider
    if _provider is None:
        _provider = create_provider(
            settings.llm_provider,
            settings.llm_model,
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
        )
    return _provider


def get_fallback_provider() -> AnthropicProvider | OpenAICompatibleProvider | None:
    """
    Return the fallback provider, or None when fallback is disabled.

    Keys come from the provider-specific settings (OPENAI_API_KEY or
    ANTHROPIC_API_KEY), never from LLM_API_KEY, which belongs to the primary.
    """
    global _fallback
    if not settings.llm_fallback_enabled:
        return None
    if _fallback is None:
        key = (
            settings.anthropic_api_key
            if settings.llm_fallback_provider == "anthropic"
            else settings.openai_api_key
        )
        _fallback = create_provider(
            settings.llm_fallback_provider,
            settings.llm_fallback_model,
            api_key=key,
            base_url=settings.llm_fallback_base_url,
        )
    return _fallback
