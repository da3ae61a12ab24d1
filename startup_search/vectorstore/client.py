"""
Search store clients.

This module provides connection factories for the supported stores:
Elasticsearch (hybrid semantic + structured index) and Qdrant (vector
collection with payload filtering). Clients are created once per process
and configured for a single attempt per call.
"""

from typing import Optional

from elasticsearch import Elasticsearch
from qdrant_client import QdrantClient

from startup_search.core.config import settings

_es_client: Optional[Elasticsearch] = None
_qdrant_client: Optional[QdrantClient] = None


def get_elasticsearch_client() -> Elasticsearch:
    """Get or create the singleton Elasticsearch client."""
    global _es_client
    if _es_client is None:
        _es_client = Elasticsearch(
            settings.ELASTICSEARCH_ENDPOINT,
            api_key=settings.ELASTICSEARCH_API_KEY or None,
            request_timeout=settings.STORE_TIMEOUT_SECONDS,
            max_retries=0,
            retry_on_timeout=False,
        )
    return _es_client


def get_qdrant_client(timeout: Optional[float] = None) -> QdrantClient:
    """Get or create the singleton Qdrant client."""
    global _qdrant_client
    if _qdrant_client is None:
        _qdrant_client = QdrantClient(
            url=settings.QDRANT_URL,
            api_key=settings.QDRANT_API_KEY,
            timeout=int(timeout or settings.STORE_TIMEOUT_SECONDS),
        )
    return _qdrant_client
