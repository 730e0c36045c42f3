"""Text matcher.

Finds posts whose title or description contains the query as a
case-insensitive substring.  A title hit is an ``exact`` match, a
description-only hit a ``text`` match.  No further scoring: results keep the
store order (newest first).
"""

import logging

from ..posts import attach_media, query_posts
from .base import DEFAULT_LIMIT, Matcher, MatchType, SearchOptions, SearchResult

logger = logging.getLogger(__name__)


def classify_text_match(query: str, title: str, description: str) -> MatchType | None:
    """Return ``exact``, ``text`` or ``None`` when neither field contains *query*."""
    needle = query.lower()
    if needle in (title or "").lower():
        return "exact"
    if needle in (description or "").lower():
        return "text"
    return None


async def text_search(
    es,
    query: str,
    options: SearchOptions | None = None,
) -> list[SearchResult]:
    """Substring search over title and description."""
    options = options or SearchOptions()
    if not query.strip():
        return []

    try:
        docs = await query_posts(
            es,
            options.filters,
            text=query,
            size=options.limit or DEFAULT_LIMIT,
        )

        matched: list[tuple[dict, MatchType]] = []
        for doc in docs:
            match_type = classify_text_match(query, doc.get("title"), doc.get("description"))
            if match_type is not None:
                matched.append((doc, match_type))

        posts = await attach_media(es, [doc for doc, _ in matched])
    except Exception:
        logger.exception("Text search failed for query %r", query)
        return []

    return [
        SearchResult(post=post, match_type=match_type)
        for post, (_, match_type) in zip(posts, matched)
    ]


class TextMatcher(Matcher):
    """Case-insensitive substring matcher over title and description."""

    @property
    def name(self) -> str:
        return "text"

    async def match(self, es, query: str, options: SearchOptions | None = None) -> list[SearchResult]:
        return await text_search(es, query, options)
