"""Data access helpers for users and their invitations."""
from __future__ import annotations

from datetime import timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gopher_social.core.security import hash_token
from gopher_social.db.time import utcnow
from gopher_social.models import Role, User, UserInvitation

from .base import transaction
from .errors import (
    DuplicateEmailError,
    DuplicateUsernameError,
    RecordNotFoundError,
    is_unique_violation,
    violated_column,
)

__all__ = ["UserRepository", "DEFAULT_ROLE"]

DEFAULT_ROLE = "user"


class UserRepository:
    """User persistence and the invitation lifecycle.

    Multi-statement operations (``create_and_invite``, ``activate`` and
    ``delete``) run in a single transaction: either every statement commits
    or none does.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, user: User, role_name: str = DEFAULT_ROLE) -> User:
        """Insert ``user`` with the role called ``role_name``.

        Raises:
            DuplicateEmailError: The email is already registered.
            DuplicateUsernameError: The username is already taken.
            RecordNotFoundError: The role does not exist.
        """
        with transaction(self.session):
            self._insert(user, role_name)
        return user

    def create_and_invite(
        self,
        user: User,
        token_hash: str,
        ttl: timedelta,
        role_name: str = DEFAULT_ROLE,
    ) -> User:
        """Insert ``user`` and its invitation atomically.

        Args:
            user: Unsaved user carrying a hashed password.
            token_hash: SHA-256 hex digest of the invitation token.
            ttl: Lifetime of the invitation.
            role_name: Role assigned to the new user.
        """
        with transaction(self.session):
            self._insert(user, role_name)
            self.session.add(
                UserInvitation(token=token_hash, user_id=user.id, expiry=utcnow() + ttl)
            )
            self.session.flush()
        return user

    def activate(self, token: str) -> int:
        """Activate the user owning ``token`` and drop all of its invitations.

        Returns:
            The id of the activated user.

        Raises:
            RecordNotFoundError: The token is unknown, expired or already used.
        """
        with transaction(self.session):
            user_id = self.session.execute(
                select(UserInvitation.user_id)
                .where(
                    UserInvitation.token == hash_token(token),
                    UserInvitation.expiry > utcnow(),
                )
                .with_for_update()
            ).scalar_one_or_none()
            if user_id is None:
                raise RecordNotFoundError("invitation not found or expired")

            result = self.session.execute(
                update(User).where(User.id == user_id).values(is_active=True)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError("user not found")

            self._delete_invitations(user_id)
        return user_id

    def delete(self, user_id: int) -> None:
        """Delete the user and any invitation left behind."""
        with transaction(self.session):
            self._delete_invitations(user_id)
            self.session.execute(delete(User).where(User.id == user_id))

    def get_by_id(self, user_id: int) -> User:
        """Return the active user with ``user_id`` (role included)."""
        user = self.session.execute(
            select(User).where(User.id == user_id, User.is_active.is_(True))
        ).scalar_one_or_none()
        if user is None:
            raise RecordNotFoundError("user not found")
        return user

    def get_by_username(self, username: str) -> User:
        """Return the active user called ``username`` (role included)."""
        user = self.session.execute(
            select(User).where(User.username == username, User.is_active.is_(True))
        ).scalar_one_or_none()
        if user is None:
            raise RecordNotFoundError("user not found")
        return user

    def _insert(self, user: User, role_name: str) -> None:
        role = self.session.execute(
            select(Role).where(Role.name == (role_name or DEFAULT_ROLE))
        ).scalar_one_or_none()
        if role is None:
            raise RecordNotFoundError(f"role {role_name!r} not found")

        user.role = role
        self.session.add(user)
        try:
            self.session.flush()
        except IntegrityError as err:
            if is_unique_violation(err):
                column = violated_column(err, "email", "username")
                if column == "email":
                    raise DuplicateEmailError() from err
                if column == "username":
                    raise DuplicateUsernameError() from err
            raise

    def _delete_invitations(self, user_id: int) -> None:
        self.session.execute(delete(UserInvitation).where(UserInvitation.user_id == user_id))
