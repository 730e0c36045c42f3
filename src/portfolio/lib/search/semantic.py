"""Semantic matcher.

Ranks posts by cosine similarity between the query embedding and each post's
stored embedding:

1. Embed the query.
2. Fetch every filtered post that has an embedding, newest first.
3. Score each candidate and keep those at or above the threshold.
4. Resolve media for the survivors.
5. Sort by similarity descending; equal scores stay newest first.
"""

import logging

from ..embeddings import cosine_similarity, generate_embedding
from ..posts import attach_media, query_posts
from .base import DEFAULT_LIMIT, Matcher, SearchOptions, SearchResult

logger = logging.getLogger(__name__)


def rank_by_similarity(
    query_vector: list[float],
    docs: list[dict],
    threshold: float,
) -> list[tuple[dict, float]]:
    """Score *docs* against *query_vector* and drop those below *threshold*.

    Returns ``(doc, similarity)`` pairs sorted by similarity descending, then
    ``created_on`` descending.
    """
    scored: list[tuple[dict, float]] = []
    for doc in docs:
        embedding = doc.get("embedding")
        if not embedding:
            continue
        similarity = cosine_similarity(query_vector, embedding)
        if similarity >= threshold:
            scored.append((doc, similarity))

    # Two stable passes: secondary key first.
    scored.sort(key=lambda pair: pair[0].get("created_on") or "", reverse=True)
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored


async def semantic_search(
    es,
    query: str,
    options: SearchOptions | None = None,
) -> list[SearchResult]:
    """Similarity search over stored post embeddings."""
    options = options or SearchOptions()
    if not query.strip():
        return []

    query_vector = generate_embedding(query)

    try:
        docs = await query_posts(es, options.filters, require_embedding=True)
        ranked = rank_by_similarity(query_vector, docs, options.threshold)
        ranked = ranked[: options.limit or DEFAULT_LIMIT]
        posts = await attach_media(es, [doc for doc, _ in ranked])
    except Exception:
        logger.exception("Semantic search failed for query %r", query)
        return []

    return [
        SearchResult(post=post, similarity=similarity, match_type="semantic")
        for post, (_, similarity) in zip(posts, ranked)
    ]


class SemanticMatcher(Matcher):
    """Cosine-similarity matcher over stored post embeddings."""

    @property
    def name(self) -> str:
        return "semantic"

    async def match(self, es, query: str, options: SearchOptions | None = None) -> list[SearchResult]:
        return await semantic_search(es, query, options)
