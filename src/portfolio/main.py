from contextlib import asynccontextmanager

from fastapi import FastAPI

from .lib.elasticsearch import create_client, ensure_indices
from .routers import health, posts, search


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests assign a fake client to `app.state.es` and skip the lifespan.
    es = create_client()
    await ensure_indices(es)
    app.state.es = es
    try:
        yield
    finally:
        await es.close()


app = FastAPI(
    title="Portfolio Search API",
    description="Hybrid search and content API for a single-author portfolio site",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(search.router)
app.include_router(posts.router)


@app.get("/")
async def root():
    return {"message": "Portfolio Search API"}
