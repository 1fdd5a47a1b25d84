"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .comment import CommentCreate, CommentResponse
from .common import ErrorResponse, HealthResponse, MessageResponse
from .post import PaginatedFeedQuery, PostCreate, PostResponse, PostUpdate, PostWithMetadata
from .user import CreateTokenRequest, RegisterUserRequest, RoleResponse, UserResponse

__all__ = [
    "CommentCreate", "CommentResponse",
    "ErrorResponse", "HealthResponse", "MessageResponse",
    "PaginatedFeedQuery", "PostCreate", "PostResponse", "PostUpdate", "PostWithMetadata",
    "CreateTokenRequest", "RegisterUserRequest", "RoleResponse", "UserResponse",
]
