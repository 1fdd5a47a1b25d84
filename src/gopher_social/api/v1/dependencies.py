"""Shared API dependencies: storage, authentication and post-scoped stages."""

import base64
import binascii
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, Path
from sqlalchemy.orm import Session

from gopher_social.core.errors import BasicUnauthorized, Forbidden, NotFound, Unauthorized
from gopher_social.core.security import credentials_match
from gopher_social.core.settings import settings
from gopher_social.db.session import get_db
from gopher_social.models import Comment, Post
from gopher_social.repositories import RecordNotFoundError, Storage
from gopher_social.schemas.user import UserResponse
from gopher_social.services.authenticator import (
    JWTAuthenticator,
    TokenError,
    get_authenticator,
    subject_user_id,
)
from gopher_social.services.mailer import SendGridMailer, get_mailer
from gopher_social.services.user_cache import UserCache, get_user_cache, load_user

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_storage(db: SessionDep) -> Storage:
    """Wrap the request's session in the storage facade."""
    return Storage(db)


StorageDep = Annotated[Storage, Depends(get_storage)]
AuthenticatorDep = Annotated[JWTAuthenticator, Depends(get_authenticator)]
UserCacheDep = Annotated[UserCache | None, Depends(get_user_cache)]
AuthorizationHeader = Annotated[str | None, Header(alias="Authorization")]


def _split_authorization(header: str | None, scheme: str) -> str:
    if not header:
        raise Unauthorized("authorization header is missing")
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != scheme:
        raise Unauthorized("authorization header is malformed")
    return parts[1]


def get_current_user(
    storage: StorageDep,
    authenticator: AuthenticatorDep,
    cache: UserCacheDep,
    authorization: AuthorizationHeader = None,
) -> UserResponse:
    """Resolve the bearer token into the active user it was issued for.

    Raises:
        Unauthorized: The header is missing or malformed, the token does not
            validate, or the user is unknown or inactive.
    """
    token = _split_authorization(authorization, "Bearer")
    try:
        claims = authenticator.validate_token(token)
        user_id = subject_user_id(claims)
    except TokenError as err:
        raise Unauthorized(str(err)) from err

    try:
        return load_user(user_id, storage, cache)
    except RecordNotFoundError as err:
        raise Unauthorized(str(err)) from err


# Type alias for current user dependency
CurrentUserDep = Annotated[UserResponse, Depends(get_current_user)]


@dataclass
class PostContext:
    """Post addressed by ``/posts/{post_id}`` together with its comments."""

    post: Post
    comments: list[Comment]


def get_post_context(
    storage: StorageDep,
    post_id: Annotated[int, Path(ge=1)],
) -> PostContext:
    """Load the addressed post and its comments, or answer 404."""
    try:
        post = storage.posts.get_by_id(post_id)
    except RecordNotFoundError as err:
        raise NotFound(str(err)) from err
    return PostContext(post=post, comments=storage.comments.get_by_post_id(post_id))


PostContextDep = Annotated[PostContext, Depends(get_post_context)]


def check_post_ownership(role_name: str) -> Callable[..., PostContext]:
    """Build a dependency admitting the post's author or anyone ranked ``role_name`` or above."""

    def dependency(
        context: PostContextDep,
        user: CurrentUserDep,
        storage: StorageDep,
    ) -> PostContext:
        if context.post.user_id == user.id:
            return context
        # Unknown role names surface as a 500.
        required = storage.roles.get_by_name(role_name)
        if user.role.level >= required.level:
            return context
        raise Forbidden("forbidden")

    return dependency


def require_basic_auth(authorization: AuthorizationHeader = None) -> str:
    """Check HTTP Basic credentials against the configured pair.

    Returns:
        The authenticated username.
    """
    try:
        encoded = _split_authorization(authorization, "Basic")
    except Unauthorized as err:
        raise BasicUnauthorized(err.message) from err

    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as err:
        raise BasicUnauthorized("authorization header is malformed") from err

    username, sep, password = decoded.partition(":")
    if not sep:
        raise BasicUnauthorized("invalid credentials")
    # Both comparisons always run.
    user_ok = credentials_match(username, settings.basic_auth_username)
    password_ok = credentials_match(password, settings.basic_auth_password)
    if not (user_ok and password_ok):
        raise BasicUnauthorized("invalid credentials")
    return username


MailerDep = Annotated[SendGridMailer, Depends(get_mailer)]
