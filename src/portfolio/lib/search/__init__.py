"""Hybrid search and embedding maintenance for portfolio posts.

Provides named matchers (``semantic``, ``text``) that can be run on their
own, the hybrid orchestrator that combines them, and a last-request-wins
gate for callers that search as the user types.
"""

from ..posts import SearchFilters
from .base import (
    Matcher,
    SearchOptions,
    SearchResult,
    get_matcher,
    list_matchers,
    register_matcher,
)
from .debounce import LatestQueryGate
from .hybrid import hybrid_search
from .maintenance import update_all_embeddings, update_post_embedding
from .semantic import SemanticMatcher, semantic_search
from .text import TextMatcher, text_search

# Register built-in matchers
_semantic = SemanticMatcher()
register_matcher(_semantic)

_text = TextMatcher()
register_matcher(_text)

__all__ = [
    "Matcher",
    "SearchFilters",
    "SearchOptions",
    "SearchResult",
    "get_matcher",
    "list_matchers",
    "register_matcher",
    "hybrid_search",
    "LatestQueryGate",
    "semantic_search",
    "text_search",
    "update_all_embeddings",
    "update_post_embedding",
    "SemanticMatcher",
    "TextMatcher",
]
