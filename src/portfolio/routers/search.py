"""Search router.

GET /search
    Hybrid search (default) or a single named matcher.

GET /search/matchers
    List available matchers.
"""

import logging

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from ..lib.search import (
    SearchFilters,
    SearchOptions,
    SearchResult,
    get_matcher,
    hybrid_search,
    list_matchers,
)
from ..lib.search.base import DEFAULT_THRESHOLD
from ..models import PostStatus

router = APIRouter(tags=["search"])

logger = logging.getLogger(__name__)

HYBRID_MODE = "hybrid"


class SearchResponse(BaseModel):
    """Search response returning ranked `SearchResult` entries."""
    results: list[SearchResult]


class MatcherListResponse(BaseModel):
    matchers: list[str]


@router.get("/search/matchers", response_model=MatcherListResponse)
async def search_list_matchers() -> MatcherListResponse:
    """Return the search modes accepted by ``/search``."""
    return MatcherListResponse(matchers=[HYBRID_MODE, *list_matchers()])


@router.get("/search", response_model=SearchResponse)
async def search_posts(
    request: Request,
    q: str = Query(..., description="Free-text query"),
    limit: int | None = Query(None, ge=1, le=100),
    threshold: float = Query(DEFAULT_THRESHOLD, ge=-1.0, le=1.0),
    status: list[PostStatus] | None = Query(None),
    tags: list[str] | None = Query(None),
    featured: bool | None = Query(None),
    mode: str = Query(HYBRID_MODE, description="'hybrid' or a matcher name"),
) -> SearchResponse:
    """Search posts.

    Search is best-effort: a store failure yields an empty result list, the
    same as a query that matched nothing.
    """
    options = SearchOptions(
        limit=limit,
        threshold=threshold,
        filters=SearchFilters(status=status, tags=tags, featured=featured),
    )

    es = request.app.state.es
    if mode == HYBRID_MODE:
        results = await hybrid_search(es, q, options)
    else:
        matcher = get_matcher(mode)
        if matcher is None:
            raise HTTPException(status_code=404, detail=f"Unknown search mode: {mode}")
        results = await matcher.match(es, q, options)

    return SearchResponse(results=results)
