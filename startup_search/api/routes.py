"""
API route definitions.

This module defines the HTTP endpoints for the search service:
- POST /search - Execute a natural language startup search
- GET /catalog - Current snapshot of filterable values
"""

import asyncio

from fastapi import APIRouter, Depends

from startup_search.core.schemas import SearchRequest, SearchResponse
from startup_search.retrieval.catalog import ValueCatalog
from startup_search.retrieval.pipeline import RetrievalPipeline, get_pipeline

router = APIRouter()


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    pipeline: RetrievalPipeline = Depends(get_pipeline),
) -> SearchResponse:
    """Search startups. Stage failures are reported in ``errors``, never as 5xx."""
    return await pipeline.search(request.query, top_k=request.top_k)


@router.get("/catalog", response_model=ValueCatalog)
async def catalog(
    pipeline: RetrievalPipeline = Depends(get_pipeline),
) -> ValueCatalog:
    return await asyncio.to_thread(pipeline.catalog_provider.get)
