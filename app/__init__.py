# =============================================================================
# FK Benefits Q&A
# =============================================================================
# Answers questions about Försäkringskassan benefits from the FK document,
# alongside live web search results, through two interchangeable pipelines:
#
#   Solution 1 — OpenAI hosted vector store + Responses API (file_search,
#                web_search_preview), retrieval and generation inside OpenAI
#   Solution 2 — self-hosted RAG: pgvector retrieval, Tavily web search,
#                Gemini synthesis with a paid OpenAI fallback
#
# Package structure:
#   app/
#   ├── api/          → FastAPI routers (/api/solution1, /api/solution2, history)
#   ├── agents/       → Answer pipelines (hosted calls, LangGraph RAG graph)
#   ├── db/           → Database engine, sessions and ORM models (pgvector)
#   ├── models/       → Pydantic V2 request/response schemas
#   ├── services/     → Parsing, chunking, embedding, LLM providers, pricing,
#   │                    retry, error classification, conversation memory
#   └── workers/      → Celery ingestion task
# =============================================================================
