"""Base abstraction for search matchers.

Each matcher has a unique name and an async ``match`` method returning
``SearchResult`` objects.  Matchers are registered in a module-level registry
so the API layer can run one by name, while the hybrid orchestrator composes
the semantic and text matchers directly.
"""

from abc import ABC, abstractmethod
from typing import Literal

from pydantic import BaseModel, Field

from ...models import Post
from ..posts import SearchFilters

MatchType = Literal["semantic", "exact", "text"]

DEFAULT_THRESHOLD = 0.3
DEFAULT_LIMIT = 10


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class SearchOptions(BaseModel):
    """Options shared by every matcher."""

    limit: int | None = Field(None, ge=1, description="Maximum number of results")
    threshold: float = Field(
        DEFAULT_THRESHOLD, description="Minimum cosine similarity for semantic matches (inclusive)"
    )
    filters: SearchFilters = Field(default_factory=SearchFilters)


class SearchResult(BaseModel):
    """A post that matched a query, and why."""

    post: Post
    similarity: float | None = Field(
        None, description="Cosine similarity; only set for semantic matches"
    )
    match_type: MatchType


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class Matcher(ABC):
    """Abstract base class for named matchers.

    Subclasses must implement `name` (property) and `match`.  Implementations
    never raise: failures are logged and produce an empty list.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name identifying this matcher (e.g. ``semantic``)."""
        ...

    @abstractmethod
    async def match(
        self,
        es,
        query: str,
        options: SearchOptions | None = None,
    ) -> list[SearchResult]:
        """Return posts matching *query*.

        Parameters
        ----------
        es:
            An ``AsyncElasticsearch`` client instance.
        query:
            Free-text user query.
        options:
            Limit, threshold and filters; defaults apply when omitted.

        Returns
        -------
        list[SearchResult]
        """
        ...


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_matchers: dict[str, Matcher] = {}


def register_matcher(matcher: Matcher) -> None:
    """Register a matcher instance by its name."""
    _matchers[matcher.name] = matcher


def get_matcher(name: str) -> Matcher | None:
    """Look up a registered matcher by name.  Returns ``None`` if not found."""
    return _matchers.get(name)


def list_matchers() -> list[str]:
    """Return the names of all registered matchers."""
    return list(_matchers.keys())
