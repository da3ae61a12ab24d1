"""
Retrieval module for hybrid search over startup documents.

This module handles the query-time retrieval workflow:
- Strategy routing (strict vs flexible)
- Constraint extraction against the value catalog
- Compilation into filtered, scored or semantic-only queries
- Store query construction for Elasticsearch and Qdrant
- Execution and Reciprocal Rank Fusion of ranked lists

The retrieval pipeline provides a unified interface for:
- Semantic search (similarity only)
- Filtered search (hard filters + similarity ordering)
- Hybrid search (similarity fused with soft structured signals)
"""

from startup_search.retrieval.aggregator import ResultAggregator
from startup_search.retrieval.catalog import CatalogProvider, ValueCatalog
from startup_search.retrieval.executor import FusionMode, HybridRetrievalExecutor
from startup_search.retrieval.filter_parser import FilterExtractor
from startup_search.retrieval.pipeline import RetrievalPipeline, get_pipeline
from startup_search.retrieval.query_compiler import QueryCompiler
from startup_search.retrieval.query_processor import StrategyRouter

__all__ = [
    "RetrievalPipeline",
    "get_pipeline",
    "StrategyRouter",
    "FilterExtractor",
    "QueryCompiler",
    "HybridRetrievalExecutor",
    "FusionMode",
    "ResultAggregator",
    "ValueCatalog",
    "CatalogProvider",
]
