"""Posts router – read access for the site, write access for the admin.

Every write recomputes the post's embedding after the post is persisted.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from pydantic import BaseModel

from ..lib.posts import (
    PostExistsError,
    PostNotFoundError,
    create_post,
    delete_post,
    get_all_posts,
    get_post,
    update_post,
)
from ..lib.search import update_all_embeddings, update_post_embedding
from ..models import Post
from ..security import verify_api_key

router = APIRouter(tags=["posts"])

logger = logging.getLogger(__name__)

admin = [Depends(verify_api_key)]


class PostListResponse(BaseModel):
    posts: list[Post]


class EmbeddingUpdateResponse(BaseModel):
    updated: bool


class RefreshResponse(BaseModel):
    status: str


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@router.get("/posts", response_model=PostListResponse)
async def posts_list(request: Request) -> PostListResponse:
    try:
        posts = await get_all_posts(request.app.state.es)
    except Exception as exc:
        logger.exception("Failed to fetch posts")
        raise HTTPException(status_code=502, detail="Failed to fetch posts") from exc
    return PostListResponse(posts=posts)


@router.get("/posts/{post_id}", response_model=Post)
async def posts_get(request: Request, post_id: str) -> Post:
    try:
        return await get_post(request.app.state.es, post_id)
    except PostNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to fetch post %s", post_id)
        raise HTTPException(status_code=502, detail="Failed to fetch post") from exc


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

@router.post("/posts", response_model=Post, status_code=201, dependencies=admin)
async def posts_create(request: Request, payload: Post) -> Post:
    es = request.app.state.es
    try:
        post = await create_post(es, payload)
    except PostExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to create post %s", payload.id)
        raise HTTPException(status_code=502, detail="Failed to create post") from exc

    await update_post_embedding(es, post.id, post.title, post.description)
    return post


@router.put("/posts/{post_id}", response_model=Post, dependencies=admin)
async def posts_update(request: Request, post_id: str, payload: Post) -> Post:
    es = request.app.state.es
    post = payload.model_copy(update={"id": post_id})
    try:
        updated = await update_post(es, post)
    except PostNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to update post %s", post_id)
        raise HTTPException(status_code=502, detail="Failed to update post") from exc

    await update_post_embedding(es, updated.id, updated.title, updated.description)
    return updated


@router.delete("/posts/{post_id}", status_code=204, dependencies=admin)
async def posts_delete(request: Request, post_id: str) -> None:
    try:
        await delete_post(request.app.state.es, post_id)
    except PostNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to delete post %s", post_id)
        raise HTTPException(status_code=502, detail="Failed to delete post") from exc


@router.post(
    "/posts/{post_id}/embedding",
    response_model=EmbeddingUpdateResponse,
    dependencies=admin,
)
async def posts_update_embedding(request: Request, post_id: str) -> EmbeddingUpdateResponse:
    """Recompute one post's embedding from its stored title and description."""
    es = request.app.state.es
    try:
        post = await get_post(es, post_id)
    except PostNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to fetch post %s", post_id)
        raise HTTPException(status_code=502, detail="Failed to fetch post") from exc

    updated = await update_post_embedding(es, post.id, post.title, post.description)
    return EmbeddingUpdateResponse(updated=updated)


@router.post(
    "/embeddings/refresh",
    response_model=RefreshResponse,
    status_code=202,
    dependencies=admin,
)
async def embeddings_refresh(request: Request, background_tasks: BackgroundTasks) -> RefreshResponse:
    """Schedule recomputation of every post embedding; progress is only logged."""
    background_tasks.add_task(update_all_embeddings, request.app.state.es)
    return RefreshResponse(status="scheduled")
