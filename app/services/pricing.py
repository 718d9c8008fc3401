# =============================================================================
# Provider Pricing Registry — Cost Estimation
# =============================================================================
#
# Maps (provider_type, model_name) → per-token costs in USD.
# Used by both pipelines to attach an estimated cost to every answer:
#   - Solution 1: Responses API calls (gpt-4o-mini)
#   - Solution 2: query embedding + synthesis (Gemini free tier or the
#     gpt-4o-mini fallback)
#
# Costs are stored as USD per TOKEN so estimation is a plain multiply.
#
# estimate_cost() returns None for unknown models rather than 0.0.
# Unknown cost != zero cost.
#
# Source: provider pricing pages. Update this dict when prices change.
# =============================================================================

from __future__ import annotations

import re
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelPricing:
    """Per-token costs for a model."""

    input_cost_per_token: float    # USD per input token
    output_cost_per_token: float   # USD per output token
    provider_label: str            # Human-readable provider name

    @property
    def is_free(self) -> bool:
        return self.input_cost_per_token == 0 and self.output_cost_per_token == 0


@dataclass
class TokenUsage:
    """Token counts and estimated cost for one or more API calls."""

    input_tokens: int = 0
    output_tokens: int = 0
    estimated_cost: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            estimated_cost=self.estimated_cost + other.estimated_cost,
        )

    def to_dict(self) -> dict:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "estimated_cost": round(self.estimated_cost, 6),
        }


# ---------------------------------------------------------------------------
# Pricing Registry
# ---------------------------------------------------------------------------
# provider_type matches the prefix used by create_provider_from_id():
# "anthropic" or "openai_compatible". Embedding models have no output cost.
# ---------------------------------------------------------------------------

PRICING_REGISTRY: dict[tuple[str, str], ModelPricing] = {
    # --- OpenAI ---
    ("openai_compatible", "gpt-4o-mini"): ModelPricing(
        0.15 / 1_000_000, 0.60 / 1_000_000, "OpenAI",
    ),
    ("openai_compatible", "gpt-4o"): ModelPricing(
        2.50 / 1_000_000, 10.00 / 1_000_000, "OpenAI",
    ),
    ("openai_compatible", "text-embedding-3-small"): ModelPricing(
        0.02 / 1_000_000, 0.0, "OpenAI",
    ),
    ("openai_compatible", "text-embedding-3-large"): ModelPricing(
        0.13 / 1_000_000, 0.0, "OpenAI",
    ),

    # --- Google (free tier through the OpenAI-compatible endpoint) ---
    ("openai_compatible", "gemini-2.0-flash"): ModelPricing(0.0, 0.0, "Google"),
    ("openai_compatible", "gemini-2.0-flash-exp"): ModelPricing(
        0.0, 0.0, "Google",
    ),

    # --- Anthropic ---
    ("anthropic", "claude-haiku-4-5"): ModelPricing(
        0.80 / 1_000_000, 4.00 / 1_000_000, "Anthropic",
    ),
    ("anthropic", "claude-sonnet-4-6"): ModelPricing(
        3.00 / 1_000_000, 15.00 / 1_000_000, "Anthropic",
    ),
}

# "gpt-4o-mini-2024-07-18" → "gpt-4o-mini"
_SNAPSHOT_SUFFIX = re.compile(r"-\d{4}-\d{2}-\d{2}$|-\d{8}$")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_pricing(provider_type: str, model: str) -> ModelPricing | None:
    """
    Look up pricing for a provider+model combination.

    APIs usually echo back a dated snapshot name, so an exact miss is
    retried with the date suffix stripped.
    """
    pricing = PRICING_REGISTRY.get((provider_type, model))
    if pricing is None:
        base = _SNAPSHOT_SUFFIX.sub("", model)
        if base != model:
            pricing = PRICING_REGISTRY.get((provider_type, base))
    return pricing


def estimate_cost(
    provider_type: str,
    model: str,
    input_tokens: int,
    output_tokens: int = 0,
) -> float | None:
    """
    Calculate estimated cost in USD for a completion or embedding call.

    Returns None if the model is not in the registry (unknown pricing).
    """
    pricing = get_pricing(provider_type, model)
    if pricing is None:
        return None
    return (
        pricing.input_cost_per_token * input_tokens
        + pricing.output_cost_per_token * output_tokens
    )


def build_usage(
    provider_type: str,
    model: str,
    input_tokens: int,
    output_tokens: int = 0,
) -> TokenUsage:
    """TokenUsage for one call; unknown models are costed at 0.0."""
    cost = estimate_cost(provider_type, model, input_tokens, output_tokens)
    return TokenUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        estimated_cost=cost or 0.0,
    )


def cost_label(provider_type: str, model: str) -> str:
    """'free', 'paid', or 'unknown' for display next to an answer."""
    pricing = get_pricing(provider_type, model)
    if pricing is None:
        return "unknown"
    return "free" if pricing.is_free else "paid"
