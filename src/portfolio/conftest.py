"""Shared fixtures: an in-memory stand-in for ``AsyncElasticsearch``.

The fake evaluates the small query subset the post store emits (``bool``,
``term``, ``terms``, ``exists``, ``ids``, ``wildcard``), answers the scroll
calls ``async_scan`` makes, and raises the client's own ``ConflictError`` and
``NotFoundError`` so store, search and router tests can run end to end without
a cluster.
"""

import re

import pytest
from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig
from elasticsearch import ConflictError, NotFoundError

from .lib.elasticsearch import MEDIA_INDEX, POSTS_INDEX

_SHARDS = {"total": 1, "successful": 1, "skipped": 0, "failed": 0}


def api_error(cls, status: int, message: str):
    """Build an ``elasticsearch`` API error the way the transport raises it."""
    meta = ApiResponseMeta(
        status=status,
        http_version="1.1",
        headers=HttpHeaders(),
        duration=0.0,
        node=NodeConfig("http", "localhost", 9200),
    )
    cause = {"type": message, "reason": message}
    return cls(message, meta, {"error": {"root_cause": [cause], **cause}, "status": status})


def _values(value) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _wildcard_regex(pattern: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if c == "*":
            out.append(".*")
        elif c == "?":
            out.append(".")
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


def _as_list(clauses) -> list:
    if clauses is None:
        return []
    if isinstance(clauses, dict):
        return [clauses]
    return list(clauses)


def matches(query: dict | None, doc_id: str, doc: dict) -> bool:
    if not query:
        return True
    ((kind, body),) = query.items()

    if kind == "match_all":
        return True
    if kind == "bool":
        required = _as_list(body.get("filter")) + _as_list(body.get("must"))
        if not all(matches(c, doc_id, doc) for c in required):
            return False
        if any(matches(c, doc_id, doc) for c in _as_list(body.get("must_not"))):
            return False
        should = _as_list(body.get("should"))
        if should:
            minimum = body.get("minimum_should_match", 0 if required else 1)
            if sum(matches(c, doc_id, doc) for c in should) < minimum:
                return False
        return True
    if kind == "term":
        ((field, value),) = body.items()
        if isinstance(value, dict):
            value = value["value"]
        return value in _values(doc.get(field))
    if kind == "terms":
        ((field, wanted),) = body.items()
        return any(v in wanted for v in _values(doc.get(field)))
    if kind == "exists":
        return bool(_values(doc.get(body["field"])))
    if kind == "ids":
        return doc_id in body["values"]
    if kind == "wildcard":
        ((field, spec),) = body.items()
        flags = re.DOTALL | (re.IGNORECASE if spec.get("case_insensitive") else 0)
        regex = _wildcard_regex(spec["value"])
        return any(re.fullmatch(regex, str(v), flags) for v in _values(doc.get(field)))
    raise NotImplementedError(f"Fake ES does not support query type {kind!r}")


class FakeIndices:
    def __init__(self, es: "InMemoryEs"):
        self._es = es
        self.created: dict[str, dict | None] = {}

    async def exists(self, *, index, **kwargs):
        return index in self._es.docs

    async def create(self, *, index, mappings=None, **kwargs):
        self.created[index] = mappings
        self._es.docs.setdefault(index, {})


class InMemoryEs:
    """Dict-backed fake of the async Elasticsearch client."""

    def __init__(self):
        self.docs: dict[str, dict[str, dict]] = {}
        self.calls: list[dict] = []
        self.indices = FakeIndices(self)
        self.closed = False
        self._scrolls: dict[str, tuple[int, list[dict]]] = {}

    def seed(self, index: str, doc_id: str, document: dict) -> None:
        self.docs.setdefault(index, {})[doc_id] = dict(document)

    def calls_to(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]

    def options(self, **kwargs) -> "InMemoryEs":
        return self

    async def search(self, *, index, query=None, size=10, sort=None, _source=None, scroll=None, **kwargs):
        self.calls.append({
            "method": "search",
            "index": index,
            "query": query,
            "size": size,
            "sort": sort,
            "scroll": scroll,
        })
        hits = [
            (doc_id, doc)
            for doc_id, doc in self.docs.get(index, {}).items()
            if matches(query, doc_id, doc)
        ]
        # "_doc" (index order) is what scans without an explicit sort send
        if isinstance(sort, list):
            for spec in reversed(sort):
                ((field, order),) = spec.items()
                if isinstance(order, dict):
                    order = order.get("order", "asc")
                hits.sort(key=lambda h: h[1].get(field) or "", reverse=order == "desc")

        out = []
        for doc_id, doc in hits:
            src = dict(doc)
            if _source is not None:
                src = {k: v for k, v in doc.items() if k in _source}
            out.append({"_id": doc_id, "_score": 1.0, "_source": src})

        resp = {"hits": {"total": {"value": len(hits)}, "hits": out[:size]}}
        if scroll is not None:
            scroll_id = f"scroll-{len(self.calls)}"
            self._scrolls[scroll_id] = (size, out[size:])
            resp.update(_scroll_id=scroll_id, _shards=_SHARDS)
        return resp

    async def scroll(self, *, scroll_id, **kwargs):
        self.calls.append({"method": "scroll", "scroll_id": scroll_id})
        size, remaining = self._scrolls[scroll_id]
        self._scrolls[scroll_id] = (size, remaining[size:])
        return {"_scroll_id": scroll_id, "_shards": _SHARDS, "hits": {"hits": remaining[:size]}}

    async def clear_scroll(self, *, scroll_id, **kwargs):
        self._scrolls.pop(scroll_id, None)

    async def index(self, *, index, id, document, **kwargs):
        self.calls.append({"method": "index", "index": index, "id": id})
        self.seed(index, id, document)
        return {"_id": id, "result": "created"}

    async def create(self, *, index, id, document, **kwargs):
        self.calls.append({"method": "create", "index": index, "id": id})
        if id in self.docs.get(index, {}):
            raise api_error(ConflictError, 409, "version_conflict_engine_exception")
        self.seed(index, id, document)
        return {"_id": id, "result": "created"}

    async def update(self, *, index, id, doc, **kwargs):
        self.calls.append({"method": "update", "index": index, "id": id, "doc": doc})
        stored = self.docs.get(index, {})
        if id not in stored:
            raise api_error(NotFoundError, 404, "document_missing_exception")
        stored[id] = {**stored[id], **doc}
        return {"_id": id, "result": "updated"}

    async def delete_by_query(self, *, index, query, **kwargs):
        self.calls.append({"method": "delete_by_query", "index": index, "query": query})
        stored = self.docs.get(index, {})
        doomed = [doc_id for doc_id, doc in stored.items() if matches(query, doc_id, doc)]
        for doc_id in doomed:
            del stored[doc_id]
        return {"deleted": len(doomed)}

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_es():
    return InMemoryEs()


@pytest.fixture
def seed_post(fake_es):
    """Factory storing a post document (and optional media) in ``fake_es``."""

    def _seed(post_id, title, description="", *, created_on="2024-01-01T00:00:00+00:00",
              embedding=None, media=(), **fields):
        doc = {
            "id": post_id,
            "title": title,
            "description": description,
            "content": "",
            "tags": [],
            "status": "completed",
            "featured": False,
            "created_on": created_on,
            "updated_on": created_on,
            "methodology": [],
            "results": "",
            **fields,
        }
        if embedding is not None:
            doc["embedding"] = embedding
        fake_es.seed(POSTS_INDEX, post_id, doc)
        for item in media:
            fake_es.seed(MEDIA_INDEX, item["id"], {**item, "post_id": post_id})
        return doc

    return _seed
