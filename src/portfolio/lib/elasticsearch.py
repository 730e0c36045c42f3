"""Shared Elasticsearch utilities.

Client construction, index definitions and response helpers used by the
post store, the search matchers and the routers.
"""

import logging
import os

from elastic_transport import ObjectApiResponse
from elasticsearch import AsyncElasticsearch
from elasticsearch.helpers import async_scan

from .embeddings import EMBEDDING_DIM

logger = logging.getLogger(__name__)

POSTS_INDEX = os.environ.get("POSTS_INDEX", "data_science_posts")
MEDIA_INDEX = os.environ.get("MEDIA_INDEX", "data_science_media")

# Hits fetched per scroll page when reading a whole result set.
SCAN_PAGE_SIZE = 500

# ``wildcard`` fields keep the whole value as one term, so substring queries
# behave like SQL ILIKE '%q%' on long descriptions too.
POSTS_MAPPINGS = {
    "properties": {
        "id": {"type": "keyword"},
        "title": {"type": "wildcard"},
        "description": {"type": "wildcard"},
        "content": {"type": "text"},
        "tags": {"type": "keyword"},
        "status": {"type": "keyword"},
        "featured": {"type": "boolean"},
        "created_on": {"type": "date"},
        "updated_on": {"type": "date"},
        "github_url": {"type": "keyword", "index": False},
        "demo_url": {"type": "keyword", "index": False},
        "dataset_url": {"type": "keyword", "index": False},
        "methodology": {"type": "text"},
        "results": {"type": "text"},
        # Not indexed: similarity is computed in-process and the zero vector
        # must be storable.
        "embedding": {"type": "dense_vector", "dims": EMBEDDING_DIM, "index": False},
    }
}

MEDIA_MAPPINGS = {
    "properties": {
        "id": {"type": "keyword"},
        "post_id": {"type": "keyword"},
        "type": {"type": "keyword"},
        "url": {"type": "keyword", "index": False},
        "caption": {"type": "text"},
        "alt": {"type": "text"},
    }
}


def create_client() -> AsyncElasticsearch:
    """Build the application-scoped client from ``ES_URL`` / ``ES_API_KEY``."""
    url = os.environ.get("ES_URL", "http://localhost:9200")
    api_key = os.environ.get("ES_API_KEY")
    if api_key:
        return AsyncElasticsearch(url, api_key=api_key)
    return AsyncElasticsearch(url)


async def ensure_indices(es) -> None:
    """Create the posts and media indices when they do not exist yet."""
    for index, mappings in ((POSTS_INDEX, POSTS_MAPPINGS), (MEDIA_INDEX, MEDIA_MAPPINGS)):
        if await es.indices.exists(index=index):
            continue
        logger.info("Creating index %s", index)
        await es.indices.create(index=index, mappings=mappings)


def unwrap_es_response(resp) -> dict:
    """Unwrap an Elasticsearch response, handling both ObjectApiResponse and dict.

    Raises ``TypeError`` if the response type is unexpected.
    """
    if isinstance(resp, ObjectApiResponse):
        return resp.body
    elif isinstance(resp, dict):
        return resp
    else:
        logger.error("Unexpected Elasticsearch response type: %s", type(resp))
        raise TypeError(f"Unexpected Elasticsearch response type: {type(resp)}")


def _hit_pair(hit: dict) -> tuple[str, dict]:
    src = hit.get("_source") or {}
    return hit.get("_id") or src.get("id"), src


def iter_hits(data: dict):
    """Yield ``(_id, _source)`` pairs from a search response body."""
    for hit in data.get("hits", {}).get("hits", []):
        yield _hit_pair(hit)


async def scan_hits(
    es,
    *,
    index: str,
    query: dict,
    sort: list | None = None,
    source: list[str] | None = None,
):
    """Yield ``(_id, _source)`` for every document matching *query*.

    Pages through the whole result set with a scroll, so there is no
    ``max_result_window`` cap.  When *sort* is given the hits arrive in that
    order.
    """
    body: dict = {"query": query}
    if sort is not None:
        body["sort"] = sort
    if source is not None:
        body["_source"] = source

    async for hit in async_scan(
        es,
        index=index,
        query=body,
        size=SCAN_PAGE_SIZE,
        preserve_order=sort is not None,
    ):
        yield _hit_pair(hit)
