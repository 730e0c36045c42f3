"""Last-request-wins gate for interactive search callers.

The search functions are stateless; a caller issuing one query per keystroke
wraps them in a :class:`LatestQueryGate`, which waits for a quiet period and
drops any result whose query has since been superseded.
"""

import asyncio
from collections.abc import Awaitable, Callable

from .base import SearchOptions, SearchResult

DEFAULT_DEBOUNCE_SECONDS = 0.3

SearchFn = Callable[[str, SearchOptions | None], Awaitable[list[SearchResult]]]


class LatestQueryGate:
    """Debounce queries and discard stale responses.

    ``submit`` returns the results for the latest query, or ``None`` when a
    newer query arrived before this one finished.  A blank query clears
    immediately with ``[]`` and also supersedes anything in flight.
    """

    def __init__(self, search: SearchFn, delay: float = DEFAULT_DEBOUNCE_SECONDS):
        self._search = search
        self._delay = delay
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def submit(
        self,
        query: str,
        options: SearchOptions | None = None,
    ) -> list[SearchResult] | None:
        self._generation += 1
        generation = self._generation

        if not query.strip():
            return []

        await asyncio.sleep(self._delay)
        if not self.is_current(generation):
            return None

        results = await self._search(query, options)
        if not self.is_current(generation):
            return None
        return results
