# src/gopher_social/api/v1/endpoints/auth.py
"""Registration and token issuing endpoints."""

import asyncio
import logging
from datetime import timedelta

from fastapi import APIRouter, status
from starlette.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from gopher_social.api.v1.dependencies import AuthenticatorDep, MailerDep, StorageDep
from gopher_social.core.errors import BadRequest, Unauthorized
from gopher_social.core.security import (
    generate_invitation_token,
    hash_password,
    hash_token,
    verify_password,
)
from gopher_social.core.settings import settings
from gopher_social.models import User
from gopher_social.repositories import (
    DuplicateEmailError,
    DuplicateUsernameError,
    RecordNotFoundError,
    StoreError,
)
from gopher_social.schemas.user import CreateTokenRequest, RegisterUserRequest, UserResponse
from gopher_social.services.mailer import USER_WELCOME_TEMPLATE, MailerError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/authentication", tags=["authentication"])


def activation_url(token: str) -> str:
    return f"{settings.frontend_url}/users/activate/{token}"


@router.post(
    "/user",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user and mail the activation link",
)
async def register_user(
    payload: RegisterUserRequest,
    storage: StorageDep,
    mailer: MailerDep,
) -> UserResponse:
    """Create an inactive user with a pending invitation, then send the invite.

    If the mail cannot be delivered the user (and its invitation) is deleted
    again and the request fails with a 500. The same cleanup runs when the
    request is cancelled while the mail is being sent.
    """
    user = User(
        username=payload.username,
        email=payload.email,
        password=await run_in_threadpool(hash_password, payload.password),
    )
    plain_token = generate_invitation_token()

    try:
        storage.users.create_and_invite(
            user,
            hash_token(plain_token),
            timedelta(seconds=settings.invitation_ttl_seconds),
        )
    except (DuplicateEmailError, DuplicateUsernameError) as err:
        raise BadRequest(str(err)) from err

    created = UserResponse.model_validate(user)

    try:
        status_code = await mailer.send(
            USER_WELCOME_TEMPLATE,
            created.username,
            created.email,
            {"username": created.username, "activation_url": activation_url(plain_token)},
            is_sandbox=not settings.is_production,
        )
    except (MailerError, asyncio.CancelledError):
        # Cancellation (deadline or disconnect) must not leave the user behind.
        logger.error("welcome email not sent user_id=%s", created.id)
        try:
            storage.users.delete(created.id)
        except (StoreError, SQLAlchemyError):
            logger.exception("error deleting user after failed welcome email user_id=%s", created.id)
        raise

    logger.info("welcome email sent user_id=%s status=%s", created.id, status_code)
    return created


@router.post(
    "/token",
    response_model=str,
    status_code=status.HTTP_201_CREATED,
    summary="Exchange credentials for a bearer token",
)
async def create_token(
    payload: CreateTokenRequest,
    storage: StorageDep,
    authenticator: AuthenticatorDep,
) -> str:
    """Return a signed token for an active user with a matching password."""
    try:
        user = storage.users.get_by_username(payload.username)
    except RecordNotFoundError as err:
        raise Unauthorized(str(err)) from err

    if not await run_in_threadpool(verify_password, payload.password, user.password):
        raise Unauthorized("invalid credentials")

    return authenticator.issue_user_token(user.id)
