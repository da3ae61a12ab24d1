"""
Retrieval pipeline orchestration.

This module coordinates the full query processing workflow as an explicit
state machine:

    ROUTING -> EXTRACTING -> COMPILING -> EXECUTING -> DONE

Each state is handled by one coroutine that updates the per-query context
and returns the next state. Stage failures are recorded on the response
and never raised: search() always returns a SearchResponse whose result
is a FusedResult, possibly empty.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from startup_search.core.config import settings
from startup_search.core.schemas import (
    CompiledQuery,
    ConstraintSet,
    FusedResult,
    RoutingDecision,
    SearchResponse,
    SearchStrategy,
    StageError,
)
from startup_search.llm.classifier import QueryClassifier, get_classifier
from startup_search.retrieval.catalog import CatalogProvider, ValueCatalog
from startup_search.retrieval.elastic_store import ElasticsearchStore
from startup_search.retrieval.executor import HybridRetrievalExecutor, SearchStore
from startup_search.retrieval.filter_parser import FilterExtractor
from startup_search.retrieval.qdrant_store import QdrantStore
from startup_search.retrieval.query_compiler import QueryCompiler
from startup_search.retrieval.query_processor import StrategyRouter

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    ROUTING = "routing"
    EXTRACTING = "extracting"
    COMPILING = "compiling"
    EXECUTING = "executing"
    DONE = "done"


@dataclass
class QueryContext:
    """Mutable state of one query as it moves through the pipeline."""

    query: str
    top_k: Optional[int] = None
    catalog: ValueCatalog = field(default_factory=ValueCatalog)
    decision: Optional[RoutingDecision] = None
    constraints: ConstraintSet = field(default_factory=ConstraintSet)
    compiled: Optional[CompiledQuery] = None
    result: FusedResult = field(default_factory=FusedResult)
    errors: List[StageError] = field(default_factory=list)
    timestamps: Dict[str, float] = field(default_factory=dict)

    def record(self, stage: str, error: Exception) -> None:
        logger.warning(
            f"Stage {stage} failed for query {self.query!r}: {type(error).__name__}: {error}"
        )
        self.errors.append(
            StageError(stage=stage, error_type=type(error).__name__, message=str(error))
        )

    def mark(self, event: str) -> None:
        self.timestamps[event] = time.time()

    def to_response(self) -> SearchResponse:
        decision = self.decision
        return SearchResponse(
            query=self.query,
            strategy=decision.strategy if decision else SearchStrategy.STRICT,
            rationale=decision.rationale if decision else "",
            constraints=self.constraints,
            compiled_query=self.compiled,
            result=self.result,
            errors=self.errors,
            timestamps=self.timestamps,
        )


def create_store(backend: Optional[str] = None) -> SearchStore:
    """Create the configured search store."""
    backend = (backend or settings.SEARCH_BACKEND).lower()
    if backend == "elasticsearch":
        return ElasticsearchStore()
    if backend == "qdrant":
        return QdrantStore()
    raise ValueError(f"Unknown search backend: {backend!r}")


class RetrievalPipeline:
    """
    End-to-end search over the startup corpus.

    Stages run sequentially for one query; separate queries share only the
    read-only catalog snapshot, so search() may be awaited concurrently.
    """

    def __init__(
        self,
        classifier: Optional[QueryClassifier] = None,
        store: Optional[SearchStore] = None,
        catalog_provider: Optional[CatalogProvider] = None,
        compiler: Optional[QueryCompiler] = None,
        executor: Optional[HybridRetrievalExecutor] = None,
        timeout_seconds: Optional[float] = None,
    ):
        classifier = classifier or get_classifier()
        store = store or create_store()

        self.router = StrategyRouter(classifier)
        self.extractor = FilterExtractor(classifier)
        self.compiler = compiler or QueryCompiler()
        self.executor = executor or HybridRetrievalExecutor(store)
        self.catalog_provider = catalog_provider or CatalogProvider(store.fetch_catalog)
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.QUERY_TIMEOUT_SECONDS
        )

        self._handlers: Dict[PipelineState, Callable[[QueryContext], Awaitable[PipelineState]]] = {
            PipelineState.ROUTING: self._route,
            PipelineState.EXTRACTING: self._extract,
            PipelineState.COMPILING: self._compile,
            PipelineState.EXECUTING: self._execute,
        }

    async def _route(self, ctx: QueryContext) -> PipelineState:
        ctx.decision, failure = await self.router.decide(ctx.query, ctx.catalog)
        if failure is not None:
            ctx.record(PipelineState.ROUTING.value, failure)
        ctx.mark("routed")
        return PipelineState.EXTRACTING

    async def _extract(self, ctx: QueryContext) -> PipelineState:
        ctx.constraints, failure = await self.extractor.extract(ctx.query, ctx.catalog)
        if failure is not None:
            ctx.record(PipelineState.EXTRACTING.value, failure)
        ctx.mark("filterParsed")
        return PipelineState.COMPILING

    async def _compile(self, ctx: QueryContext) -> PipelineState:
        ctx.compiled, errors = self.compiler.compile(
            ctx.constraints, ctx.query, ctx.decision.strategy, catalog=ctx.catalog
        )
        for error in errors:
            ctx.record(PipelineState.COMPILING.value, error)
        ctx.mark("compiled")
        return PipelineState.EXECUTING

    async def _execute(self, ctx: QueryContext) -> PipelineState:
        ctx.result, failures = await self.executor.execute(ctx.compiled, top_k=ctx.top_k)
        for failure in failures:
            ctx.record(PipelineState.EXECUTING.value, failure)
        ctx.mark("searchCompleted")
        return PipelineState.DONE

    async def _run(self, ctx: QueryContext) -> None:
        ctx.catalog = await asyncio.to_thread(self.catalog_provider.get)

        state = PipelineState.ROUTING
        while state is not PipelineState.DONE:
            logger.debug(f"Pipeline state {state.value} for query {ctx.query!r}")
            state = await self._handlers[state](ctx)

    async def search(self, query: str, top_k: Optional[int] = None) -> SearchResponse:
        """
        Run a natural language query through the full pipeline.

        Args:
            query: User's natural language search query
            top_k: Number of results to return (default: from settings)

        Returns:
            SearchResponse with the fused result and per-stage diagnostics
        """
        ctx = QueryContext(query=query, top_k=top_k)
        ctx.mark("start")

        try:
            await asyncio.wait_for(self._run(ctx), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            ctx.result = FusedResult()
            ctx.record("timeout", TimeoutError(f"query exceeded {self.timeout_seconds}s"))
        except Exception as e:
            logger.error(f"Pipeline failed for query {query!r}: {e}", exc_info=True)
            ctx.result = FusedResult()
            ctx.record("pipeline", e)

        logger.info(
            f"Query {query!r}: strategy={ctx.decision.strategy.value if ctx.decision else 'none'} "
            f"results={len(ctx.result.hits)} errors={len(ctx.errors)}"
        )
        return ctx.to_response()


# Module-level singleton
_pipeline: Optional[RetrievalPipeline] = None


def get_pipeline() -> RetrievalPipeline:
    """Get or create the singleton RetrievalPipeline instance."""
    global _pipeline
    if _pipeline is None:
        _pipeline = RetrievalPipeline()
    return _pipeline
