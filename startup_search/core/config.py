"""
Application configuration management.

This module centralizes all configuration settings for the application,
loading values from environment variables with sensible defaults.

Configuration categories:
- LLM settings (API keys, model names, timeouts)
- Search backend connection settings (Elasticsearch, Qdrant)
- Embedding model configuration
- Retrieval and fusion parameters
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


@dataclass
class Config:
    """
    Central configuration for the startup search service.

    All configuration values are loaded from environment variables.
    This class serves as the single source of truth for application settings.

    Attributes:
        GROQ_API_KEY: API key for Groq LLM service.
        SEARCH_BACKEND: Which store answers retrieval calls ("elasticsearch" or "qdrant").
        FINAL_TOP_K: Number of documents returned to the caller.
        RANK_WINDOW_SIZE: Candidates fetched per retriever and considered by RRF.
        RRF_RANK_CONSTANT: The k in 1 / (k + rank).
        FUSION_MODE: "rrf" fuses separate retrievers, "bool" issues one scored query.
    """

    # LLM
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY")
    GROQ_MODEL: str = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
    LLM_MAX_TOKENS: int = _env_int("LLM_MAX_TOKENS", 1024)
    LLM_TEMPERATURE: float = _env_float("LLM_TEMPERATURE", 0.0)
    LLM_TIMEOUT_SECONDS: float = _env_float("LLM_TIMEOUT_SECONDS", 20.0)

    # Search backend
    SEARCH_BACKEND: str = os.getenv("SEARCH_BACKEND", "elasticsearch").lower()
    ELASTICSEARCH_ENDPOINT: str = os.getenv("ELASTICSEARCH_ENDPOINT", "")
    ELASTICSEARCH_API_KEY: str = os.getenv("ELASTICSEARCH_API_KEY", "")
    ELASTICSEARCH_INDEX: str = os.getenv("ELASTICSEARCH_INDEX", "startups-index")
    SEMANTIC_FIELD: str = os.getenv("SEMANTIC_FIELD", "semantic_field")
    QDRANT_URL: str = os.getenv("QDRANT_URL", "http://localhost:6333")
    QDRANT_API_KEY: str = os.getenv("QDRANT_API_KEY")
    QDRANT_COLLECTION: str = os.getenv("QDRANT_COLLECTION", "startups")
    STORE_TIMEOUT_SECONDS: float = _env_float("STORE_TIMEOUT_SECONDS", 30.0)

    # Embeddings (Qdrant backend only)
    EMBEDDING_MODEL: str = os.getenv(
        "EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2"
    )

    # Retrieval
    FINAL_TOP_K: int = _env_int("FINAL_TOP_K", 5)
    RANK_WINDOW_SIZE: int = _env_int("RANK_WINDOW_SIZE", 100)
    RRF_RANK_CONSTANT: int = _env_int("RRF_RANK_CONSTANT", 20)
    MINIMUM_SHOULD_MATCH: int = _env_int("MINIMUM_SHOULD_MATCH", 2)
    FUSION_MODE: str = os.getenv("FUSION_MODE", "rrf").lower()
    QUERY_TIMEOUT_SECONDS: float = _env_float("QUERY_TIMEOUT_SECONDS", 30.0)

    # Value catalog
    CATALOG_TERMS_SIZE: int = _env_int("CATALOG_TERMS_SIZE", 100)
    CATALOG_TTL_SECONDS: float = _env_float("CATALOG_TTL_SECONDS", 300.0)


settings = Config()
