# src/gopher_social/models/__init__.py
"""SQLAlchemy models for the GopherSocial application."""

from .follower import Follower
from .post import Comment, Post
from .user import Role, User, UserInvitation

__all__ = [
    "Comment",
    "Follower",
    "Post",
    "Role",
    "User", "UserInvitation",
]
