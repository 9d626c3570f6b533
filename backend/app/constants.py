DEFAULTS = {
    # Service name reported by FastAPI and the health endpoint
    "APP_NAME": "scholargy-backend",
    # Prefix applied to every router
    "API_PREFIX": "/api",
    # Root log level for the service
    "LOG_LEVEL": "INFO",
    # Embedding backend: "azure_openai" (hosted) or "huggingface" (local)
    "EMBEDDING_PROVIDER": "azure_openai",
    # Local encoder used when EMBEDDING_PROVIDER=huggingface
    "HF_EMBEDDING_MODEL": "sentence-transformers/all-MiniLM-L6-v2",
    "HF_EMBEDDING_DEVICE": "cpu",
    # Expected embedding length (0 = accept whatever the model returns)
    "EMBEDDING_DIMENSION": 0,
    # Query embeddings kept in the per-process LRU cache (0 = no caching)
    "EMBEDDING_CACHE_SIZE": 1024,
    # Azure OpenAI API version
    "AZURE_OPENAI_API_VERSION": "2024-06-01",
    # Mongo database holding the institution records
    "MONGODB_DATABASE": "scholargy",
    # Records collection and its vector index
    "RECORDS_COLLECTION": "ipeds_colleges",
    "RECORDS_VECTOR_INDEX": "vector_index_on_ipeds_colleges",
    # Field holding stored embeddings (records and articles)
    "VECTOR_FIELD": "embedding",
    # Hits requested from each source
    "ARTICLE_TOP_K": 3,
    "RECORD_TOP_K": 5,
    "KEYWORD_TOP_K": 5,
    # "strict" fails the query when any source fails; "tolerant" only when all fail
    "FANOUT_POLICY": "strict",
    # Fan-out join timeout in seconds (0 = wait indefinitely)
    "FANOUT_TIMEOUT_SECONDS": 0.0,
    # Rendered context budget in characters (0 = unbounded)
    "MAX_CONTEXT_CHARS": 12000,
    # "truncate" drops lowest-ranked hits; "raise" rejects the query
    "CONTEXT_OVERFLOW": "truncate",
    # Completion limits
    "LLM_MAX_TOKENS": 800,
    "LLM_TEMPERATURE": 0.7,
}
