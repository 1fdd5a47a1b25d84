# src/gopher_social/api/v1/endpoints/comments.py
"""Comment endpoints nested under ``/posts/{post_id}``.

These routes resolve the post id themselves rather than through the post
context dependency, so the post's comments are not loaded twice.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from gopher_social.api.v1.dependencies import CurrentUserDep, StorageDep, get_current_user
from gopher_social.core.errors import Forbidden, NotFound
from gopher_social.models import Comment
from gopher_social.repositories import RecordNotFoundError, Storage
from gopher_social.schemas.comment import CommentCreate, CommentResponse

router = APIRouter(
    prefix="/posts/{post_id}/comments",
    tags=["comments"],
    dependencies=[Depends(get_current_user)],
)

PostIdPath = Annotated[int, Path(ge=1)]


def _ensure_post(storage: Storage, post_id: int) -> None:
    try:
        storage.posts.get_by_id(post_id)
    except RecordNotFoundError as err:
        raise NotFound(str(err)) from err


@router.get("", response_model=list[CommentResponse])
async def list_comments(post_id: PostIdPath, storage: StorageDep) -> list[CommentResponse]:
    """Return the post's comments oldest first."""
    _ensure_post(storage, post_id)
    return [
        CommentResponse.model_validate(comment)
        for comment in storage.comments.get_by_post_id(post_id)
    ]


@router.post("", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: PostIdPath,
    payload: CommentCreate,
    user: CurrentUserDep,
    storage: StorageDep,
) -> CommentResponse:
    """Comment on a post as the caller.

    A ``user_id`` in the body, when present, must be the caller's own id.
    """
    if payload.user_id is not None and payload.user_id != user.id:
        raise Forbidden("cannot comment on behalf of another user")
    _ensure_post(storage, post_id)

    comment = storage.comments.create(
        Comment(post_id=post_id, user_id=user.id, content=payload.content)
    )
    return CommentResponse.model_validate(comment)
