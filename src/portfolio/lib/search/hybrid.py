"""Hybrid search: semantic and text matchers merged into one ranked list.

Both matchers run concurrently.  Results are merged by post id with the
semantic result winning on duplicates, then ordered semantic, exact, text.
Semantic results keep their similarity order; everything else keeps the
order the matchers returned it in.
"""

import asyncio
import logging

from .base import DEFAULT_LIMIT, SearchOptions, SearchResult
from .semantic import semantic_search
from .text import text_search

logger = logging.getLogger(__name__)

# Per-matcher limit when the caller does not set one.
DEFAULT_SUB_LIMIT = 5

MATCH_RANK = {"semantic": 0, "exact": 1, "text": 2}


def merge_results(
    semantic: list[SearchResult],
    text: list[SearchResult],
) -> list[SearchResult]:
    """De-duplicate by post id (semantic first) and order by match type."""
    merged: dict[str, SearchResult] = {}
    for result in semantic:
        merged.setdefault(result.post.id, result)
    for result in text:
        merged.setdefault(result.post.id, result)
    return sorted(merged.values(), key=lambda r: MATCH_RANK[r.match_type])


async def hybrid_search(
    es,
    query: str,
    options: SearchOptions | None = None,
) -> list[SearchResult]:
    """Run the hybrid search and return at most ``options.limit`` results.

    A blank query returns ``[]`` without touching the store.  Failures are
    logged and also yield ``[]``.
    """
    if not query.strip():
        return []

    options = options or SearchOptions()
    sub_options = options.model_copy(update={"limit": options.limit or DEFAULT_SUB_LIMIT})

    try:
        semantic, text = await asyncio.gather(
            semantic_search(es, query, sub_options),
            text_search(es, query, sub_options),
        )
    except Exception:
        logger.exception("Hybrid search failed for query %r", query)
        return []

    return merge_results(semantic, text)[: options.limit or DEFAULT_LIMIT]
