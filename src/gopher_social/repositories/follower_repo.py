"""Data access helpers for the follow graph."""
from __future__ import annotations

from sqlalchemy import delete, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gopher_social.models import Follower

from .errors import (
    RecordConflictError,
    RecordNotFoundError,
    is_foreign_key_violation,
    is_unique_violation,
)

__all__ = ["FollowerRepository"]


class FollowerRepository:
    """Follow/unfollow edges; ``follower_id`` follows ``user_id``."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def follow(self, follower_id: int, user_id: int) -> None:
        """Insert the edge.

        Raises:
            RecordConflictError: The edge already exists.
            RecordNotFoundError: Either user does not exist.
        """
        try:
            self.session.execute(
                insert(Follower).values(user_id=user_id, follower_id=follower_id)
            )
            self.session.commit()
        except IntegrityError as err:
            self.session.rollback()
            if is_unique_violation(err):
                raise RecordConflictError("already following this user") from err
            if is_foreign_key_violation(err):
                raise RecordNotFoundError("user not found") from err
            raise

    def unfollow(self, follower_id: int, user_id: int) -> None:
        """Remove the edge; raises RecordNotFoundError when there was none."""
        result = self.session.execute(
            delete(Follower).where(
                Follower.user_id == user_id,
                Follower.follower_id == follower_id,
            )
        )
        if result.rowcount == 0:
            self.session.rollback()
            raise RecordNotFoundError("not following this user")
        self.session.commit()
