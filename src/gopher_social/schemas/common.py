"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Liveness payload."""

    status: str
    env: str
    version: str


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: str
