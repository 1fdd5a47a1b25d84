"""User-related Pydantic schemas."""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class RoleResponse(BaseModel):
    """Role attached to a user."""

    id: int
    name: str
    level: int
    description: str = ""

    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    """Public view of a user. The password hash is never part of it."""

    id: int
    username: str
    email: str
    created_at: datetime
    is_active: bool
    role_id: int
    role: RoleResponse

    model_config = ConfigDict(from_attributes=True)


class RegisterUserRequest(BaseModel):
    """Schema for account registration."""

    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=72)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Reject values that are not addressable emails."""
        if not _EMAIL_PATTERN.match(v):
            raise ValueError("email must be a valid email address")
        return v


class CreateTokenRequest(BaseModel):
    """Credentials exchanged for a bearer token."""

    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=72)
