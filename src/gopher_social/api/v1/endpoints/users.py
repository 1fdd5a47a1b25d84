# src/gopher_social/api/v1/endpoints/users.py
"""User profile, activation, follow graph and feed endpoints."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Path, Query, Response, status
from pydantic import ValidationError

from gopher_social.api.v1.dependencies import CurrentUserDep, StorageDep
from gopher_social.core.errors import BadRequest, Conflict, NotFound
from gopher_social.repositories import RecordConflictError, RecordNotFoundError
from gopher_social.schemas.post import (
    FEED_DEFAULT_LIMIT,
    FEED_MAX_LIMIT,
    PaginatedFeedQuery,
    PostWithMetadata,
)
from gopher_social.schemas.user import UserResponse

router = APIRouter(prefix="/users", tags=["users"])


def get_target_user(
    storage: StorageDep,
    user_id: Annotated[int, Path(ge=1)],
) -> UserResponse:
    """Load the active user addressed by ``/users/{user_id}``."""
    try:
        return UserResponse.model_validate(storage.users.get_by_id(user_id))
    except RecordNotFoundError as err:
        raise NotFound(str(err)) from err


TargetUserDep = Annotated[UserResponse, Depends(get_target_user)]


def _split_tags(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


@router.put(
    "/activate/{token}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def activate_user(token: str, storage: StorageDep) -> Response:
    """Redeem an invitation token; unknown, expired or used tokens are a 400."""
    try:
        storage.users.activate(token)
    except RecordNotFoundError as err:
        raise BadRequest(str(err)) from err
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/feed", response_model=list[PostWithMetadata])
async def get_user_feed(
    user: CurrentUserDep,
    storage: StorageDep,
    limit: Annotated[int, Query(ge=1, le=FEED_MAX_LIMIT)] = FEED_DEFAULT_LIMIT,
    offset: Annotated[int, Query(ge=0)] = 0,
    sort: Annotated[Literal["asc", "desc"], Query()] = "desc",
    tags: Annotated[str | None, Query(description="Comma separated tag list")] = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
) -> list[PostWithMetadata]:
    """Return the caller's posts and those of the users they follow."""
    try:
        query = PaginatedFeedQuery(
            limit=limit,
            offset=offset,
            sort=sort,
            tags=_split_tags(tags),
            search=search or None,
        )
    except ValidationError as err:
        raise BadRequest(err.errors()[0]["msg"]) from err
    return storage.posts.get_user_feed(user.id, query)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(_: CurrentUserDep, target: TargetUserDep) -> UserResponse:
    return target


@router.put(
    "/{user_id}/follow",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def follow_user(
    user: CurrentUserDep,
    target: TargetUserDep,
    storage: StorageDep,
) -> Response:
    """Make the caller follow ``user_id``; a repeated follow is a 409."""
    try:
        storage.followers.follow(follower_id=user.id, user_id=target.id)
    except RecordConflictError as err:
        raise Conflict(str(err)) from err
    except RecordNotFoundError as err:
        raise NotFound(str(err)) from err
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{user_id}/unfollow",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def unfollow_user(
    user: CurrentUserDep,
    target: TargetUserDep,
    storage: StorageDep,
) -> Response:
    try:
        storage.followers.unfollow(follower_id=user.id, user_id=target.id)
    except RecordNotFoundError as err:
        raise NotFound(str(err)) from err
    return Response(status_code=status.HTTP_204_NO_CONTENT)
