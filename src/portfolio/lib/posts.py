"""Post store backed by Elasticsearch.

Posts live in ``POSTS_INDEX`` and their media in ``MEDIA_INDEX`` keyed by
``post_id``.  A post owns its media: updates replace the media set and
deletes remove media before the post itself.

Functions here raise on store errors; the search core and the routers decide
how to degrade.
"""

import logging
from datetime import datetime, timezone

from elasticsearch import ConflictError, NotFoundError
from pydantic import BaseModel, Field

from ..models import MediaItem, Post, PostStatus
from .elasticsearch import MEDIA_INDEX, POSTS_INDEX, iter_hits, scan_hits, unwrap_es_response

logger = logging.getLogger(__name__)

CREATED_DESC = [{"created_on": {"order": "desc"}}]


class PostNotFoundError(LookupError):
    """Raised when a post id does not exist in the store."""

    def __init__(self, post_id: str):
        super().__init__(f"Post not found: {post_id}")
        self.post_id = post_id


class PostExistsError(ValueError):
    """Raised when creating a post whose id is already taken."""

    def __init__(self, post_id: str):
        super().__init__(f"Post already exists: {post_id}")
        self.post_id = post_id


class SearchFilters(BaseModel):
    """Caller-supplied predicates applied to every post query.

    An empty list means the same as ``None``: no constraint.
    """

    status: list[PostStatus] | None = Field(None, description="Allowed lifecycle statuses")
    tags: list[str] | None = Field(None, description="Posts must share at least one tag")
    featured: bool | None = Field(None, description="Required featured flag")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Query building
# ---------------------------------------------------------------------------

def build_filter_clauses(filters: SearchFilters | None) -> list[dict]:
    """Translate *filters* into Elasticsearch ``bool.filter`` clauses."""
    if filters is None:
        return []
    clauses: list[dict] = []
    if filters.status:
        clauses.append({"terms": {"status": list(filters.status)}})
    if filters.featured is not None:
        clauses.append({"term": {"featured": filters.featured}})
    if filters.tags:
        # ``terms`` on an array field matches on any overlap
        clauses.append({"terms": {"tags": list(filters.tags)}})
    return clauses


def escape_wildcard(text: str) -> str:
    """Escape the wildcard metacharacters ``\\``, ``*`` and ``?``."""
    return text.replace("\\", "\\\\").replace("*", "\\*").replace("?", "\\?")


def substring_clause(text: str) -> dict:
    """Case-insensitive "title or description contains *text*" clause."""
    pattern = f"*{escape_wildcard(text)}*"
    return {
        "bool": {
            "should": [
                {"wildcard": {"title": {"value": pattern, "case_insensitive": True}}},
                {"wildcard": {"description": {"value": pattern, "case_insensitive": True}}},
            ],
            "minimum_should_match": 1,
        }
    }


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

def media_from_source(src: dict) -> MediaItem:
    return MediaItem(
        id=src["id"],
        type=src["type"],
        url=src["url"],
        caption=src.get("caption") or None,
        alt=src.get("alt") or None,
    )


def post_from_source(src: dict, media: list[MediaItem] | None = None) -> Post:
    """Build a :class:`Post` from a stored document and its resolved media."""
    return Post(
        id=src["id"],
        title=src.get("title") or "",
        description=src.get("description") or "",
        content=src.get("content") or "",
        tags=src.get("tags") or [],
        status=src.get("status") or "planned",
        featured=bool(src.get("featured")),
        created_on=src.get("created_on"),
        updated_on=src.get("updated_on"),
        github_url=src.get("github_url") or None,
        demo_url=src.get("demo_url") or None,
        dataset_url=src.get("dataset_url") or None,
        methodology=src.get("methodology") or [],
        results=src.get("results") or "",
        media=media or [],
    )


def post_to_document(post: Post) -> dict:
    """Stored fields of *post*, without media, timestamps or embedding."""
    return post.model_dump(exclude={"media", "created_on", "updated_on"})


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def query_posts(
    es,
    filters: SearchFilters | None = None,
    *,
    text: str | None = None,
    require_embedding: bool = False,
    size: int | None = None,
    source: list[str] | None = None,
) -> list[dict]:
    """Return raw post documents, newest first.

    Each document carries its ``id``.  *text* restricts to posts whose title
    or description contains it; *require_embedding* restricts to posts that
    have a stored embedding.  Without *size* every matching post is returned.
    """
    clauses = build_filter_clauses(filters)
    if require_embedding:
        clauses.append({"exists": {"field": "embedding"}})
    if text is not None:
        clauses.append(substring_clause(text))
    query = {"bool": {"filter": clauses}}

    if size is None:
        return [
            {**src, "id": doc_id}
            async for doc_id, src in scan_hits(
                es, index=POSTS_INDEX, query=query, sort=CREATED_DESC, source=source
            )
        ]

    kwargs = {}
    if source is not None:
        kwargs["_source"] = source

    resp = await es.search(
        index=POSTS_INDEX,
        query=query,
        sort=CREATED_DESC,
        size=size,
        **kwargs,
    )
    data = unwrap_es_response(resp)

    docs: list[dict] = []
    for doc_id, src in iter_hits(data):
        docs.append({**src, "id": doc_id})
    return docs


async def fetch_media(es, post_ids: list[str]) -> dict[str, list[MediaItem]]:
    """Fetch media for *post_ids*, grouped by owning post id."""
    grouped: dict[str, list[MediaItem]] = {post_id: [] for post_id in post_ids}
    if not post_ids:
        return grouped

    hits = scan_hits(es, index=MEDIA_INDEX, query={"terms": {"post_id": list(post_ids)}})
    async for doc_id, src in hits:
        owner = src.get("post_id")
        if owner in grouped:
            grouped[owner].append(media_from_source({**src, "id": doc_id}))
    return grouped


async def attach_media(es, docs: list[dict]) -> list[Post]:
    """Resolve media for raw post documents and return complete posts."""
    media = await fetch_media(es, [d["id"] for d in docs])
    return [post_from_source(d, media.get(d["id"], [])) for d in docs]


async def get_all_posts(es) -> list[Post]:
    """All posts with their media, newest first."""
    return await attach_media(es, await query_posts(es))


async def get_post(es, post_id: str) -> Post:
    resp = await es.search(index=POSTS_INDEX, query={"ids": {"values": [post_id]}}, size=1)
    data = unwrap_es_response(resp)
    docs = [{**src, "id": doc_id} for doc_id, src in iter_hits(data)]
    if not docs:
        raise PostNotFoundError(post_id)
    return (await attach_media(es, docs))[0]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def _insert_media(es, post_id: str, media: list[MediaItem]) -> None:
    for item in media:
        await es.index(
            index=MEDIA_INDEX,
            id=item.id,
            document={**item.model_dump(), "post_id": post_id},
            refresh="wait_for",
        )


async def delete_media(es, post_id: str) -> int:
    """Delete every media row owned by *post_id*; returns the count removed."""
    resp = await es.delete_by_query(
        index=MEDIA_INDEX,
        query={"term": {"post_id": post_id}},
        refresh=True,
    )
    return unwrap_es_response(resp).get("deleted", 0)


async def create_post(es, post: Post) -> Post:
    """Persist a new post and its media; timestamps are set here.

    Raises :class:`PostExistsError` when the id is taken; nothing is written
    in that case.
    """
    now = _now()
    document = {**post_to_document(post), "created_on": now, "updated_on": now}
    try:
        await es.create(index=POSTS_INDEX, id=post.id, document=document, refresh="wait_for")
    except ConflictError as exc:
        raise PostExistsError(post.id) from exc
    await _insert_media(es, post.id, post.media)
    return post.model_copy(update={"created_on": now, "updated_on": now})


async def update_post(es, post: Post) -> Post:
    """Overwrite the stored fields of an existing post and replace its media.

    ``created_on`` and any stored embedding are preserved.
    """
    now = _now()
    try:
        await es.update(
            index=POSTS_INDEX,
            id=post.id,
            doc={**post_to_document(post), "updated_on": now},
            refresh="wait_for",
        )
    except NotFoundError as exc:
        raise PostNotFoundError(post.id) from exc
    await delete_media(es, post.id)
    await _insert_media(es, post.id, post.media)
    return await get_post(es, post.id)


async def delete_post(es, post_id: str) -> None:
    """Delete a post and, first, all of its media."""
    removed = await delete_media(es, post_id)
    resp = await es.delete_by_query(
        index=POSTS_INDEX,
        query={"ids": {"values": [post_id]}},
        refresh=True,
    )
    if unwrap_es_response(resp).get("deleted", 0) == 0:
        raise PostNotFoundError(post_id)
    logger.info("Deleted post %s and %d media items", post_id, removed)


async def set_post_embedding(es, post_id: str, embedding: list[float]) -> None:
    """Overwrite the stored embedding of one post."""
    await es.update(
        index=POSTS_INDEX,
        id=post_id,
        doc={"embedding": embedding},
        refresh="wait_for",
    )
