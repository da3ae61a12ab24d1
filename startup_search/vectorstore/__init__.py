"""
Search store client module.

Connection management for the Elasticsearch index and the Qdrant
collection that hold the startup documents.
"""

from startup_search.vectorstore.client import get_elasticsearch_client, get_qdrant_client

__all__ = ["get_elasticsearch_client", "get_qdrant_client"]
