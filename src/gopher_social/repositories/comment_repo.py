"""Data access helpers for comments."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from gopher_social.models import Comment

from .base import transaction

__all__ = ["CommentRepository"]


class CommentRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, comment: Comment) -> Comment:
        """Append ``comment`` and return it with its id and timestamp."""
        with transaction(self.session):
            self.session.add(comment)
        self.session.refresh(comment)
        return comment

    def get_by_post_id(self, post_id: int) -> list[Comment]:
        """Return the comments of a post in creation order (may be empty)."""
        result = self.session.execute(
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
        return list(result.scalars())
