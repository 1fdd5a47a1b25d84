# src/gopher_social/repositories/__init__.py
"""Persistence layer: one repository per aggregate behind a Storage facade."""

from .comment_repo import CommentRepository
from .errors import (
    DuplicateEmailError,
    DuplicateUsernameError,
    RecordConflictError,
    RecordNotFoundError,
    StoreError,
)
from .follower_repo import FollowerRepository
from .post_repo import PostRepository
from .role_repo import RoleRepository
from .storage import Storage
from .user_repo import DEFAULT_ROLE, UserRepository

__all__ = [
    "CommentRepository",
    "FollowerRepository",
    "PostRepository",
    "RoleRepository",
    "UserRepository",
    "Storage",
    "DEFAULT_ROLE",
    "StoreError", "RecordNotFoundError", "RecordConflictError",
    "DuplicateEmailError", "DuplicateUsernameError",
]
