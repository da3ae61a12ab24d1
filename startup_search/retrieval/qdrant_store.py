"""
Qdrant-backed search store.

Semantic requests are embedded with a sentence-transformers model and run
as filtered vector queries. Purely structured requests scroll the
filtered set and rank points by how many should-clauses they satisfy.
The value catalog is computed from scrolled payloads.
"""

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional

from pydantic import ValidationError

from startup_search.core.config import settings
from startup_search.core.schemas import RankedHit, RetrieverRequest, StartupDocument
from startup_search.retrieval.catalog import ValueCatalog
from startup_search.retrieval.embedding import QueryEmbedder
from startup_search.retrieval.filter_builder import QdrantFilterBuilder, get_filter_builder
from startup_search.vectorstore.client import get_qdrant_client

logger = logging.getLogger(__name__)


class QdrantStore:
    """SearchStore implementation over a Qdrant collection."""

    def __init__(
        self,
        client=None,
        collection_name: Optional[str] = None,
        filter_builder: Optional[QdrantFilterBuilder] = None,
        embedder: Optional[Callable[[str], List[float]]] = None,
        scroll_limit: int = 1000,
        catalog_scan_limit: int = 10000,
        page_size: int = 256,
    ):
        self.client = client or get_qdrant_client(timeout=settings.STORE_TIMEOUT_SECONDS)
        self.collection_name = collection_name or settings.QDRANT_COLLECTION
        self.filter_builder = filter_builder or get_filter_builder()
        self.embedder = embedder or QueryEmbedder()
        self.scroll_limit = scroll_limit
        self.catalog_scan_limit = catalog_scan_limit
        self.page_size = page_size

    def _to_hit(
        self, point_id: Any, payload: Dict[str, Any], rank: int, score: float, retriever: str
    ) -> Optional[RankedHit]:
        try:
            document = StartupDocument.model_validate(payload or {})
        except ValidationError as e:
            logger.warning(f"Skipping malformed point {point_id}: {e}")
            return None
        return RankedHit(
            id=str(point_id), document=document, rank=rank, score=score, retriever=retriever
        )

    def _scroll(self, query_filter, limit: int) -> Iterator[Any]:
        offset = None
        fetched = 0
        while fetched < limit:
            points, offset = self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=query_filter,
                limit=min(self.page_size, limit - fetched),
                offset=offset,
                with_payload=True,
                with_vectors=False,
            )
            yield from points
            fetched += len(points)
            if offset is None or not points:
                break

    def search(self, request: RetrieverRequest) -> List[RankedHit]:
        query_filter = self.filter_builder.build(request)

        if request.semantic_text:
            response = self.client.query_points(
                collection_name=self.collection_name,
                query=self.embedder(request.semantic_text),
                query_filter=query_filter,
                limit=request.size,
                with_payload=True,
            )
            scored = [(p.id, p.payload, float(p.score)) for p in response.points]
        else:
            # Structured-only: rank by the number of satisfied should-clauses
            candidates = []
            for point in self._scroll(query_filter, self.scroll_limit):
                payload = point.payload or {}
                matched = sum(1 for c in request.should_clauses if c.matches(payload))
                candidates.append((point.id, payload, float(matched)))
            candidates.sort(key=lambda item: -item[2])
            scored = candidates[: request.size]

        ranked: List[RankedHit] = []
        for point_id, payload, score in scored:
            hit = self._to_hit(point_id, payload, len(ranked) + 1, score, request.name)
            if hit is not None:
                ranked.append(hit)
        return ranked

    def fetch_catalog(self) -> ValueCatalog:
        payloads = (point.payload or {} for point in self._scroll(None, self.catalog_scan_limit))
        return ValueCatalog.from_documents(payloads)
