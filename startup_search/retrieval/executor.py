"""
Hybrid retrieval execution.

This module turns a CompiledQuery into one or more retriever requests,
runs them against the search store, and produces the final FusedResult:

- SemanticOnlyQuery: one semantic retriever, ordered by similarity
- FilteredQuery: one retriever whose filters gate membership and whose
  semantic score orders the gated set
- ScoredQuery: a semantic retriever and a structured should-retriever
  fused with RRF (FusionMode.RRF), or a single boolean query with a
  mandatory semantic match and soft should-clauses (FusionMode.BOOL)

A failing retriever contributes an empty list; when every retriever fails
the result is empty rather than an exception.
"""

import asyncio
import logging
from enum import Enum
from typing import List, Optional, Protocol, Tuple

from startup_search.core.config import settings
from startup_search.core.errors import (
    RetrievalFailure,
    SearchPipelineError,
    TotalRetrievalFailure,
)
from startup_search.core.schemas import (
    CompiledQuery,
    FilteredQuery,
    FusedResult,
    RankedHit,
    RetrieverRequest,
    ScoredQuery,
    SemanticOnlyQuery,
)
from startup_search.retrieval.aggregator import ResultAggregator
from startup_search.retrieval.catalog import ValueCatalog

logger = logging.getLogger(__name__)


class FusionMode(str, Enum):
    RRF = "rrf"
    BOOL = "bool"


class SearchStore(Protocol):
    """Blocking store capability used by the executor."""

    def search(self, request: RetrieverRequest) -> List[RankedHit]: ...

    def fetch_catalog(self) -> ValueCatalog: ...


class HybridRetrievalExecutor:
    """
    Executes compiled queries against a SearchStore.

    Each retriever fetches up to ``rank_window_size`` candidates; the final
    result is cut to ``top_k``.
    """

    def __init__(
        self,
        store: SearchStore,
        aggregator: Optional[ResultAggregator] = None,
        top_k: Optional[int] = None,
        rank_window_size: Optional[int] = None,
        fusion_mode: Optional[FusionMode] = None,
    ):
        self.store = store
        self.rank_window_size = (
            rank_window_size if rank_window_size is not None else settings.RANK_WINDOW_SIZE
        )
        self.aggregator = aggregator or ResultAggregator(rank_window_size=self.rank_window_size)
        self.top_k = top_k if top_k is not None else settings.FINAL_TOP_K
        self.fusion_mode = FusionMode(fusion_mode or settings.FUSION_MODE)

    def plan(self, compiled: CompiledQuery) -> List[RetrieverRequest]:
        """
        Translate a compiled query into retriever requests.

        Raises:
            TypeError: if the compiled query is not a known variant
        """
        size = self.rank_window_size

        if isinstance(compiled, SemanticOnlyQuery):
            return [
                RetrieverRequest(name="semantic", semantic_text=compiled.semantic_text, size=size)
            ]

        if isinstance(compiled, FilteredQuery):
            return [
                RetrieverRequest(
                    name="filtered",
                    semantic_text=compiled.semantic_text,
                    semantic_required=False,
                    filter_clauses=compiled.clauses,
                    size=size,
                )
            ]

        if isinstance(compiled, ScoredQuery):
            threshold = compiled.effective_minimum_should_match
            if self.fusion_mode is FusionMode.BOOL:
                return [
                    RetrieverRequest(
                        name="scored",
                        semantic_text=compiled.semantic_text,
                        should_clauses=compiled.should_clauses,
                        minimum_should_match=threshold,
                        size=size,
                    )
                ]
            return [
                RetrieverRequest(name="semantic", semantic_text=compiled.semantic_text, size=size),
                RetrieverRequest(
                    name="structured",
                    should_clauses=compiled.should_clauses,
                    minimum_should_match=threshold,
                    size=size,
                ),
            ]

        raise TypeError(f"Unsupported compiled query: {type(compiled).__name__}")

    async def _run_retriever(
        self, request: RetrieverRequest
    ) -> Tuple[List[RankedHit], Optional[RetrievalFailure]]:
        try:
            hits = await asyncio.to_thread(self.store.search, request)
        except Exception as e:
            failure = RetrievalFailure(request.name, str(e) or type(e).__name__)
            logger.debug(f"Retriever failed, continuing without it: {failure}")
            return [], failure

        for hit in hits:
            if hit.retriever is None:
                hit.retriever = request.name
        logger.debug(f"Retriever {request.name} returned {len(hits)} hits")
        return hits, None

    async def execute(
        self, compiled: CompiledQuery, top_k: Optional[int] = None
    ) -> Tuple[FusedResult, List[SearchPipelineError]]:
        """
        Execute a compiled query.

        Args:
            compiled: Query produced by the QueryCompiler
            top_k: Number of results to return (default: executor's top_k)

        Returns:
            The fused result (possibly empty), and the retrieval failures
        """
        limit = top_k or self.top_k

        try:
            requests = self.plan(compiled)
        except TypeError as e:
            logger.debug(f"Cannot execute compiled query: {e}")
            return FusedResult(), [TotalRetrievalFailure(str(e))]

        outcomes = await asyncio.gather(*(self._run_retriever(r) for r in requests))
        ranked_lists = [hits for hits, _ in outcomes]
        failures: List[SearchPipelineError] = [f for _, f in outcomes if f is not None]

        if len(failures) == len(requests):
            total = TotalRetrievalFailure(f"all {len(requests)} retrievers failed")
            logger.debug(f"{total}; returning an empty result")
            return FusedResult(), failures + [total]

        if len(ranked_lists) == 1:
            result = self.aggregator.deduplicate_simple(ranked_lists[0], top_k=limit)
        else:
            result = self.aggregator.aggregate(ranked_lists, top_k=limit)

        return result, failures
