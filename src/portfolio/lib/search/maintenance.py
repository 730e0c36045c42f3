"""Embedding maintenance.

Recomputes stored post embeddings, either for one post after it was created
or edited, or for the whole corpus.  Neither entry point raises.
"""

import logging

from ..embeddings import generate_post_embedding
from ..posts import query_posts, set_post_embedding

logger = logging.getLogger(__name__)


async def update_post_embedding(es, post_id: str, title: str, description: str) -> bool:
    """Recompute and store the embedding of one post.

    Returns ``False`` (and logs) on any failure, including an unknown id.
    """
    try:
        embedding = generate_post_embedding(title, description)
        await set_post_embedding(es, post_id, embedding)
    except Exception:
        logger.exception("Failed to update embedding for post %s", post_id)
        return False
    return True


async def update_all_embeddings(es) -> None:
    """Recompute embeddings for every post, newest first.

    One post failing does not stop the run.
    """
    try:
        docs = await query_posts(es, source=["title", "description"])
    except Exception:
        logger.exception("Failed to fetch posts for embedding update")
        return

    logger.info("Updating embeddings for %d posts...", len(docs))
    failed = 0
    for doc in docs:
        ok = await update_post_embedding(
            es, doc["id"], doc.get("title") or "", doc.get("description") or ""
        )
        if ok:
            logger.info("Updated embedding for: %s", doc.get("title"))
        else:
            failed += 1

    logger.info(
        "Embedding update finished: %d updated, %d failed",
        len(docs) - failed,
        failed,
    )
