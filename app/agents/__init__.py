# =============================================================================
# Agents Package — Answer Pipelines
# =============================================================================
#   - hosted.py: Solution 1, parallel file_search + web_search_preview calls
#   - retriever.py: embed question → pgvector top-k
#   - web_search.py: Tavily search, empty list on failure
#   - answer.py: Swedish synthesis, primary LLM with fallback
#   - orchestrator.py: LangGraph graph tying Solution 2 together
# =============================================================================
