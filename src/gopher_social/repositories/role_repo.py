"""Data access helpers for roles."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from gopher_social.models import Role

from .errors import RecordNotFoundError

__all__ = ["RoleRepository"]


class RoleRepository:
    """Read-only lookups over the seeded roles."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_name(self, name: str) -> Role:
        """Return the role called ``name``.

        Raises:
            RecordNotFoundError: If no such role is seeded.
        """
        role = self.session.execute(select(Role).where(Role.name == name)).scalar_one_or_none()
        if role is None:
            raise RecordNotFoundError(f"role {name!r} not found")
        return role
