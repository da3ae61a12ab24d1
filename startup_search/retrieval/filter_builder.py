"""
Store query construction from retriever requests.

This module converts store-neutral RetrieverRequests into the native
query shapes of the supported backends:
- Elasticsearch Query DSL (bool filter/should/must, terms, range, semantic)
- Qdrant Filter objects for payload-based filtering
"""

from typing import Any, Dict, List, Optional

from qdrant_client.models import FieldCondition, Filter, MatchAny, MinShould, Range

from startup_search.core.config import settings
from startup_search.core.schemas import Clause, RangeClause, RetrieverRequest, TermsClause


class ElasticsearchQueryBuilder:
    """
    Builds Elasticsearch Query DSL from RetrieverRequests.

    - filter clauses go to ``bool.filter`` and gate membership without scoring
    - should clauses go to ``bool.should`` with ``minimum_should_match``
    - semantic text becomes a ``semantic`` query on the semantic field, in
      ``bool.must`` when required and in ``bool.should`` when it only orders
      a filtered set

    An optional semantic component is meant to be combined with filter
    clauses only; requests never pair it with should clauses.
    """

    def __init__(self, semantic_field: Optional[str] = None):
        self.semantic_field = semantic_field or settings.SEMANTIC_FIELD

    def clause(self, clause: Clause) -> Dict[str, Any]:
        if isinstance(clause, TermsClause):
            return {"terms": {clause.field: list(clause.values)}}

        bounds: Dict[str, float] = {}
        if clause.gte is not None:
            bounds["gte"] = clause.gte
        if clause.lte is not None:
            bounds["lte"] = clause.lte
        return {"range": {clause.field: bounds}}

    def semantic(self, text: str) -> Dict[str, Any]:
        return {"semantic": {"field": self.semantic_field, "query": text}}

    def build(self, request: RetrieverRequest) -> Dict[str, Any]:
        """
        Build the ``query`` body for one retriever.

        Args:
            request: Store-neutral retriever request

        Returns:
            Elasticsearch query object
        """
        filters = [self.clause(c) for c in request.filter_clauses]
        should = [self.clause(c) for c in request.should_clauses]
        semantic = self.semantic(request.semantic_text) if request.semantic_text else None

        if not filters and not should:
            return semantic or {"match_all": {}}

        bool_query: Dict[str, Any] = {}
        if filters:
            bool_query["filter"] = filters
        if semantic is not None and request.semantic_required:
            bool_query["must"] = [semantic]
        if should:
            bool_query["should"] = should
            bool_query["minimum_should_match"] = request.minimum_should_match
        elif semantic is not None and not request.semantic_required:
            bool_query["should"] = [semantic]

        return {"bool": bool_query}


class QdrantFilterBuilder:
    """
    Builds Qdrant Filter objects from RetrieverRequests.

    Converts clause lists into Qdrant's Filter model for use in
    query_points and scroll operations.

    - terms clauses: MatchAny on the payload field
    - range clauses: Range on the payload field
    - filter clauses are ``must`` conditions
    - should clauses with a threshold become a ``min_should`` condition
    """

    def condition(self, clause: Clause) -> FieldCondition:
        if isinstance(clause, RangeClause):
            return FieldCondition(
                key=clause.field,
                range=Range(gte=clause.gte, lte=clause.lte),
            )
        return FieldCondition(
            key=clause.field,
            match=MatchAny(any=list(clause.values)),
        )

    def build(self, request: RetrieverRequest) -> Optional[Filter]:
        """
        Build a Qdrant Filter for one retriever.

        Returns:
            Qdrant Filter object, or None if the request has no clauses
        """
        must_conditions: List = [self.condition(c) for c in request.filter_clauses]
        min_should: Optional[MinShould] = None

        if request.should_clauses and request.minimum_should_match > 0:
            min_should = MinShould(
                conditions=[self.condition(c) for c in request.should_clauses],
                min_count=request.minimum_should_match,
            )

        if not must_conditions and min_should is None:
            return None

        return Filter(
            must=must_conditions if must_conditions else None,
            min_should=min_should,
        )


# Module-level singletons
_es_builder: Optional[ElasticsearchQueryBuilder] = None
_qdrant_builder: Optional[QdrantFilterBuilder] = None


def get_es_query_builder() -> ElasticsearchQueryBuilder:
    """Get or create the singleton ElasticsearchQueryBuilder instance."""
    global _es_builder
    if _es_builder is None:
        _es_builder = ElasticsearchQueryBuilder()
    return _es_builder


def get_filter_builder() -> QdrantFilterBuilder:
    """Get or create the singleton QdrantFilterBuilder instance."""
    global _qdrant_builder
    if _qdrant_builder is None:
        _qdrant_builder = QdrantFilterBuilder()
    return _qdrant_builder
