# src/gopher_social/api/v1/endpoints/posts.py
"""Post-related endpoints for the GopherSocial API."""

from collections.abc import Iterable
from typing import Annotated

from fastapi import APIRouter, Depends, status

from gopher_social.api.v1.dependencies import (
    CurrentUserDep,
    PostContext,
    PostContextDep,
    StorageDep,
    check_post_ownership,
    get_current_user,
)
from gopher_social.core.errors import NotFound
from gopher_social.models import Comment, Post
from gopher_social.repositories import RecordNotFoundError
from gopher_social.schemas.comment import CommentResponse
from gopher_social.schemas.common import MessageResponse
from gopher_social.schemas.post import PostCreate, PostResponse, PostUpdate

router = APIRouter(
    prefix="/posts",
    tags=["posts"],
    dependencies=[Depends(get_current_user)],
)

# Authors may always edit their own posts; others need these roles.
EDIT_ROLE = "moderator"
DELETE_ROLE = "admin"

EditablePostDep = Annotated[PostContext, Depends(check_post_ownership(EDIT_ROLE))]
DeletablePostDep = Annotated[PostContext, Depends(check_post_ownership(DELETE_ROLE))]


def post_response(post: Post, comments: Iterable[Comment] = ()) -> PostResponse:
    response = PostResponse.model_validate(post)
    response.comments = [CommentResponse.model_validate(comment) for comment in comments]
    return response


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreate,
    user: CurrentUserDep,
    storage: StorageDep,
) -> PostResponse:
    """Publish a post authored by the caller."""
    post = Post(
        title=payload.title,
        content=payload.content,
        tags=list(payload.tags),
        user_id=user.id,
    )
    return post_response(storage.posts.create(post))


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(context: PostContextDep) -> PostResponse:
    return post_response(context.post, context.comments)


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    payload: PostUpdate,
    context: EditablePostDep,
    storage: StorageDep,
) -> PostResponse:
    """Apply a partial update guarded by the post's version.

    The version checked is the one sent by the client, or the one loaded for
    this request when the client did not send any. A stale version is a 404.
    """
    post = context.post
    observed_version = post.version if payload.version is None else payload.version
    try:
        updated = storage.posts.update(
            post.id,
            title=payload.title if payload.title is not None else post.title,
            content=payload.content if payload.content is not None else post.content,
            tags=payload.tags if payload.tags is not None else list(post.tags),
            observed_version=observed_version,
        )
    except RecordNotFoundError as err:
        raise NotFound(str(err)) from err
    return post_response(updated, context.comments)


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(context: DeletablePostDep, storage: StorageDep) -> MessageResponse:
    try:
        storage.posts.delete(context.post.id)
    except RecordNotFoundError as err:
        raise NotFound(str(err)) from err
    return MessageResponse(message="post deleted successfully!")
