# =============================================================================
# Services Package — Business Logic
# =============================================================================
#   - parser.py / chunker.py / embedder.py / ingestion.py: PDF → pgvector
#   - vectorstore.py: pgvector storage and cosine search
#   - hosted_store.py: OpenAI hosted vector store lifecycle
#   - llm.py: LLM providers (OpenAI-compatible incl. Gemini, Anthropic)
#   - pricing.py / usage.py: token cost estimates, free vs paid counters
#   - retry.py / errors.py: backoff and HTTP error classification
#   - memory.py: in-process conversation history
# =============================================================================
