# =============================================================================
# Answer Agent — Swedish Synthesis with Primary/Fallback LLM (Solution 2)
# =============================================================================
#
# Takes the retrieved FK chunks and asks an LLM to answer in Swedish using
# ONLY that context, quoting exact amounts.
#
# Provider order:
#   1. primary (Gemini, free tier)
#   2. fallback (gpt-4o-mini, paid) if the primary raises for any reason
# If the fallback also fails, its exception propagates to the route.
#
# No retrieved documents → a fixed Swedish "no information" answer, no LLM
# call, model "n/a".
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.agents.retriever import RetrievedDocument
from app.services.llm import LLMProvider, LLMResponse
from app.services.pricing import TokenUsage, build_usage, cost_label

logger = logging.getLogger(__name__)


@dataclass
class AnswerResult:
    answer: str
    model: str
    cost: str  # "free", "paid" or "unknown"
    fallback: bool
    usage: TokenUsage


SYSTEM_PROMPT = (
    "Du är en assistent som svarar på frågor om Försäkringskassans "
    "förmåner. Använd endast den kontext du får. Om svaret inte finns i "
    "kontexten, säg det tydligt i stället för att gissa."
)

ANSWER_TEMPLATE = (
    "Svara på följande fråga baserat ENDAST på den tillhandahållna kontexten:\n"
    "\n"
    "Kontext:\n"
    "{context}\n"
    "\n"
    "Fråga: {question}\n"
    "\n"
    "Svara på svenska med exakta siffror och belopp från kontexten. "
    "Ge ett komplett och tydligt svar."
)

NO_CONTEXT_ANSWER = (
    "Jag hittade ingen relevant information i dokumentet för att besvara "
    "frågan. Försök att formulera om frågan eller kontrollera att "
    "dokumentet har laddats in."
)


async def generate_answer(
    question: str,
    documents: list[RetrievedDocument],
    primary: LLMProvider,
    fallback: LLMProvider | None = None,
) -> AnswerResult:
    """
    Answer `question` from `documents`, falling back on primary failure.

    Raises:
        Exception: Whatever the fallback raises, or the primary's error
            when no fallback is configured.
    """
    if not documents:
        return AnswerResult(
            answer=NO_CONTEXT_ANSWER,
            model="n/a",
            cost="free",
            fallback=False,
            usage=TokenUsage(),
        )

    prompt = ANSWER_TEMPLATE.format(
        context=_format_context(documents), question=question,
    )
    messages = [{"role": "user", "content": prompt}]

    used = primary
    used_fallback = False
    try:
        response = await primary.complete(messages=messages, system=SYSTEM_PROMPT)
    except Exception as exc:
        if fallback is None:
            raise
        logger.warning(
            "Primary LLM (%s) failed, falling back to %s: %s",
            getattr(primary, "model", "?"), getattr(fallback, "model", "?"), exc,
        )
        response = await fallback.complete(messages=messages, system=SYSTEM_PROMPT)
        used = fallback
        used_fallback = True

    return _to_result(response, used.provider_type, used_fallback)


def _to_result(response: LLMResponse, provider_type: str, used_fallback: bool) -> AnswerResult:
    label = cost_label(provider_type, response.model)
    usage = build_usage(
        provider_type, response.model, response.input_tokens, response.output_tokens,
    )
    logger.info(
        "Answer generated: model=%s (%s), tokens=%d+%d, cost=$%.6f",
        response.model, label, usage.input_tokens, usage.output_tokens,
        usage.estimated_cost,
    )
    return AnswerResult(
        answer=response.content,
        model=response.model,
        cost=label,
        fallback=used_fallback,
        usage=usage,
    )


def _format_context(documents: list[RetrievedDocument]) -> str:
    """
    Numbered context blocks with page labels:

        [1] (sida 3):
        Föräldrapenning betalas ut i 480 dagar...
    """
    sections = []
    for doc in documents:
        page_label = f" (sida {doc.page_number})" if doc.page_number else ""
        sections.append(f"[{doc.id}]{page_label}:\n{doc.content}")
    return "\n\n".join(sections)
