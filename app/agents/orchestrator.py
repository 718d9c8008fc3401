# =============================================================================
# RAG Orchestrator — LangGraph Pipeline (Solution 2)
# =============================================================================
#
#            ┌──▶ file_search ──┐
#   START ───┤                  ├──▶ generate ──▶ END
#            └──▶ web_search  ──┘
#
#   file_search: embed question → pgvector top-k (app/agents/retriever.py)
#   web_search:  Tavily, degrades to [] (app/agents/web_search.py)
#   generate:    Swedish synthesis over the retrieved chunks, primary LLM
#                with paid fallback (app/agents/answer.py)
#
# The two search nodes run in the same superstep, so embedding + vector
# search overlaps with the web request. `generate` waits for both.
#
# Web results are returned alongside the answer, not fed into the prompt:
# the answer stays grounded in the FK document only.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Callable

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from app.agents.answer import AnswerResult, generate_answer
from app.agents.retriever import RetrievalResult, retrieve
from app.agents.web_search import WebResult, search_web
from app.services.llm import LLMProvider, get_fallback_provider, get_llm_provider
from app.services.usage import usage_tracker

logger = logging.getLogger(__name__)


class RagState(TypedDict, total=False):
    """
    State flowing through the graph.

    total=False: each node returns only the keys it sets.
    """

    question: str

    # Test / caller overrides for the providers
    llm_override: LLMProvider | None
    fallback_override: LLMProvider | None

    retrieval: RetrievalResult
    web_results: list[WebResult]
    answer: AnswerResult


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


async def file_search_node(state: RagState) -> dict:
    return {"retrieval": await retrieve(state["question"])}


async def web_search_node(state: RagState) -> dict:
    return {"web_results": await search_web(state["question"])}


def _resolve(factory: Callable[[], LLMProvider | None], role: str) -> LLMProvider | None:
    """Build a provider, treating a missing key as 'not available'."""
    try:
        return factory()
    except ValueError as exc:
        logger.warning("%s LLM unavailable: %s", role, exc)
        return None


async def generate_node(state: RagState) -> dict:
    primary = state.get("llm_override") or _resolve(get_llm_provider, "Primary")
    fallback = state.get("fallback_override") or _resolve(get_fallback_provider, "Fallback")
    documents = state["retrieval"].documents

    if primary is None:
        if fallback is None:
            raise ValueError(
                "No LLM configured. Set LLM_API_KEY (Gemini) or OPENAI_API_KEY in .env"
            )
        result = await generate_answer(state["question"], documents, fallback)
        result.fallback = True
    else:
        result = await generate_answer(state["question"], documents, primary, fallback)

    return {"answer": result}


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------

_builder = StateGraph(RagState)
_builder.add_node("file_search", file_search_node)
_builder.add_node("web_search", web_search_node)
_builder.add_node("generate", generate_node)

_builder.add_edge(START, "file_search")
_builder.add_edge(START, "web_search")
_builder.add_edge(["file_search", "web_search"], "generate")
_builder.add_edge("generate", END)

graph = _builder.compile()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def ask(
    question: str,
    llm: LLMProvider | None = None,
    fallback: LLMProvider | None = None,
) -> RagState:
    """
    Run the RAG graph for one question and return the final state.

    Generation calls are counted in usage_tracker (free vs paid).
    """
    initial_state: RagState = {"question": question}
    if llm is not None:
        initial_state["llm_override"] = llm
    if fallback is not None:
        initial_state["fallback_override"] = fallback

    logger.info("Invoking RAG graph: question='%s'", question[:80])
    result = await graph.ainvoke(initial_state)

    answer: AnswerResult = result["answer"]
    if answer.model != "n/a":
        usage_tracker.record(answer.cost, answer.usage, fallback=answer.fallback)

    logger.info(
        "RAG graph complete: model=%s, documents=%d, web_results=%d",
        answer.model,
        len(result["retrieval"].documents),
        len(result.get("web_results", [])),
    )
    return result
