import uuid
from typing import Literal

from pydantic import BaseModel, Field

PostStatus = Literal["planned", "in-progress", "completed"]
MediaType = Literal["image", "video", "document"]


def new_id() -> str:
    return str(uuid.uuid4())


class MediaItem(BaseModel):
    """An image, video or document attached to exactly one post."""

    id: str = Field(default_factory=new_id, description="Media identifier")
    type: MediaType = Field(..., description="Kind of attachment")
    url: str = Field(..., description="Public URL of the attachment")
    caption: str | None = Field(None, description="Optional caption")
    alt: str | None = Field(None, description="Optional alt text")


class Post(BaseModel):
    """A portfolio project write-up with its media."""

    id: str = Field(default_factory=new_id, description="Post identifier")
    title: str
    description: str = ""
    content: str = Field("", description="Long-form markdown body")
    tags: list[str] = Field(default_factory=list)
    status: PostStatus = "planned"
    featured: bool = False
    created_on: str | None = Field(None, description="ISO-8601 creation time")
    updated_on: str | None = Field(None, description="ISO-8601 last update time")
    github_url: str | None = None
    demo_url: str | None = None
    dataset_url: str | None = None
    methodology: list[str] = Field(default_factory=list)
    results: str = ""
    media: list[MediaItem] = Field(default_factory=list)
