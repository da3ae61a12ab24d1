"""
Elasticsearch-backed search store.

Runs retriever requests as Query DSL searches against the startups index
and builds the value catalog from terms/stats aggregations.
"""

import logging
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError

from startup_search.core.config import settings
from startup_search.core.schemas import RankedHit, RetrieverRequest, StartupDocument
from startup_search.retrieval.catalog import ValueCatalog
from startup_search.retrieval.filter_builder import (
    ElasticsearchQueryBuilder,
    get_es_query_builder,
)
from startup_search.vectorstore.client import get_elasticsearch_client

logger = logging.getLogger(__name__)


def parse_hits(hits: List[Mapping[str, Any]], retriever: Optional[str] = None) -> List[RankedHit]:
    """
    Convert raw search hits into RankedHits.

    Hits whose source does not fit the document schema are skipped and
    the remaining hits are ranked consecutively from 1.
    """
    ranked: List[RankedHit] = []
    for raw in hits:
        try:
            document = StartupDocument.model_validate(raw.get("_source") or {})
        except ValidationError as e:
            logger.warning(f"Skipping malformed document {raw.get('_id')}: {e}")
            continue
        ranked.append(
            RankedHit(
                id=str(raw["_id"]),
                document=document,
                rank=len(ranked) + 1,
                score=float(raw.get("_score") or 0.0),
                retriever=retriever,
            )
        )
    return ranked


class ElasticsearchStore:
    """SearchStore implementation over an Elasticsearch index."""

    def __init__(
        self,
        client=None,
        index_name: Optional[str] = None,
        query_builder: Optional[ElasticsearchQueryBuilder] = None,
        terms_size: Optional[int] = None,
    ):
        self.client = client or get_elasticsearch_client()
        self.index_name = index_name or settings.ELASTICSEARCH_INDEX
        self.query_builder = query_builder or get_es_query_builder()
        self.terms_size = terms_size or settings.CATALOG_TERMS_SIZE

    def search(self, request: RetrieverRequest) -> List[RankedHit]:
        query = self.query_builder.build(request)
        logger.debug(f"Elasticsearch query for {request.name}: {query}")

        response = self.client.search(
            index=self.index_name,
            query=query,
            size=request.size,
            source_excludes=[self.query_builder.semantic_field],
        )
        return parse_hits(response["hits"]["hits"], retriever=request.name)

    def fetch_catalog(self) -> ValueCatalog:
        response = self.client.search(
            index=self.index_name,
            size=0,
            aggs=ValueCatalog.build_aggregations(self.terms_size),
        )
        try:
            aggregations = response["aggregations"]
        except KeyError:
            logger.warning(f"No aggregations returned for index {self.index_name}")
            aggregations = {}
        return ValueCatalog.from_aggregations(aggregations)
