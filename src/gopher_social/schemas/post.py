"""Post-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .comment import CommentResponse

FEED_DEFAULT_LIMIT = 20
FEED_MAX_LIMIT = 100


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    title: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1, max_length=1000)
    tags: list[str] = Field(default_factory=list)


class PostUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value.

    ``version`` is the version the client last observed. When omitted the
    version loaded for this request is used.
    """

    title: str | None = Field(None, min_length=1, max_length=100)
    content: str | None = Field(None, min_length=1, max_length=1000)
    tags: list[str] | None = None
    version: int | None = Field(None, ge=0)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        if v is not None and any(not tag for tag in v):
            raise ValueError("tags must not contain empty values")
        return v


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: int
    title: str
    content: str
    tags: list[str]
    user_id: int
    created_at: datetime
    updated_at: datetime
    version: int
    comments: list[CommentResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class PostAuthor(BaseModel):
    """Author details attached to feed entries."""

    id: int
    username: str


class PostWithMetadata(BaseModel):
    """Feed entry: post fields plus the comment count and author."""

    id: int
    title: str
    content: str
    tags: list[str]
    user_id: int
    created_at: datetime
    updated_at: datetime
    version: int
    comments_count: int
    user: PostAuthor


class PaginatedFeedQuery(BaseModel):
    """Pagination, ordering and filtering applied to a user's feed."""

    limit: int = Field(FEED_DEFAULT_LIMIT, ge=1, le=FEED_MAX_LIMIT)
    offset: int = Field(0, ge=0)
    sort: Literal["asc", "desc"] = "desc"
    tags: list[str] = Field(default_factory=list, max_length=5)
    search: str | None = Field(None, max_length=100)
