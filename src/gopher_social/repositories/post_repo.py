"""Data access helpers for working with posts."""
from __future__ import annotations

from sqlalchemy import ColumnElement, Select, cast, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Session
from sqlalchemy.types import Text

from gopher_social.models import Comment, Follower, Post, User
from gopher_social.schemas.post import PaginatedFeedQuery, PostAuthor, PostWithMetadata

from .base import transaction
from .errors import RecordNotFoundError

__all__ = ["PostRepository"]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostRepository:
    """Post CRUD with an optimistic version counter, plus feed assembly."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, post: Post) -> Post:
        """Insert ``post``; id, timestamps and version 0 are filled in."""
        with transaction(self.session):
            self.session.add(post)
        self.session.refresh(post)
        return post

    def get_by_id(self, post_id: int) -> Post:
        """Return the post with ``post_id``.

        Raises:
            RecordNotFoundError: If the post does not exist.
        """
        post = self.session.get(Post, post_id, populate_existing=True)
        if post is None:
            raise RecordNotFoundError("post not found")
        return post

    def update(
        self,
        post_id: int,
        *,
        title: str,
        content: str,
        tags: list[str],
        observed_version: int,
    ) -> Post:
        """Overwrite the post iff its stored version equals ``observed_version``.

        On success the stored version is incremented by exactly one and the
        refreshed post is returned.

        Raises:
            RecordNotFoundError: The post is absent or ``observed_version`` is
                stale; callers cannot tell the two apart without a refetch.
        """
        with transaction(self.session):
            result = self.session.execute(
                update(Post)
                .where(Post.id == post_id, Post.version == observed_version)
                .values(
                    title=title,
                    content=content,
                    tags=list(tags),
                    version=Post.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError("post not found")
        return self.get_by_id(post_id)

    def delete(self, post_id: int) -> None:
        """Delete the post and its comments.

        Raises:
            RecordNotFoundError: If no post was removed.
        """
        with transaction(self.session):
            self.session.execute(
                delete(Comment)
                .where(Comment.post_id == post_id)
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(
                delete(Post)
                .where(Post.id == post_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise RecordNotFoundError("post not found")
        self.session.expire_all()

    def get_user_feed(
        self,
        viewer_id: int,
        query: PaginatedFeedQuery | None = None,
    ) -> list[PostWithMetadata]:
        """Return the viewer's own posts and the posts of everyone they follow.

        Each entry carries the number of comments on the post and its author.
        Ordering is by ``created_at`` in the requested direction, ties broken
        by descending id.
        """
        query = query or PaginatedFeedQuery()
        stmt = self._feed_statement(viewer_id, query)
        rows = self.session.execute(stmt).all()
        return [
            PostWithMetadata(
                id=post.id,
                title=post.title,
                content=post.content,
                tags=list(post.tags or []),
                user_id=post.user_id,
                created_at=post.created_at,
                updated_at=post.updated_at,
                version=post.version,
                comments_count=int(comments_count),
                user=PostAuthor(id=post.user_id, username=username),
            )
            for post, username, comments_count in rows
        ]

    def _feed_statement(self, viewer_id: int, query: PaginatedFeedQuery) -> Select:
        followed = select(Follower.user_id).where(Follower.follower_id == viewer_id)
        comments_count = func.count(Comment.id).label("comments_count")

        stmt = (
            select(Post, User.username, comments_count)
            .outerjoin(User, User.id == Post.user_id)
            .outerjoin(Comment, Comment.post_id == Post.id)
            .where(or_(Post.user_id == viewer_id, Post.user_id.in_(followed)))
            .group_by(Post.id, User.id, User.username)
        )

        if query.tags:
            stmt = stmt.where(self._tags_overlap(query.tags))

        if query.search:
            pattern = f"%{_escape_like(query.search)}%"
            stmt = stmt.where(
                or_(
                    Post.title.ilike(pattern, escape="\\"),
                    Post.content.ilike(pattern, escape="\\"),
                )
            )

        created = Post.created_at.asc() if query.sort == "asc" else Post.created_at.desc()
        return stmt.order_by(created, Post.id.desc()).limit(query.limit).offset(query.offset)

    def _tags_overlap(self, tags: list[str]) -> ColumnElement[bool]:
        """Match posts carrying at least one of ``tags``."""
        if self.session.get_bind().dialect.name == "sqlite":
            elements = func.json_each(Post.tags).table_valued("value")
            return select(elements.c.value).where(elements.c.value.in_(tags)).exists()
        return Post.tags.overlap(cast(list(tags), ARRAY(Text())))
