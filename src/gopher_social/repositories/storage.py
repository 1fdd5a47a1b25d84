"""Storage facade grouping the repositories that share one session."""
from __future__ import annotations

from sqlalchemy.orm import Session

from .comment_repo import CommentRepository
from .follower_repo import FollowerRepository
from .post_repo import PostRepository
from .role_repo import RoleRepository
from .user_repo import UserRepository

__all__ = ["Storage"]


class Storage:
    """Posts, users, comments, followers and roles behind a single handle."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.posts = PostRepository(session)
        self.users = UserRepository(session)
        self.comments = CommentRepository(session)
        self.followers = FollowerRepository(session)
        self.roles = RoleRepository(session)
