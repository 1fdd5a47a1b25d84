"""Create the schema and seed the built-in roles."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from gopher_social.db.session import SessionLocal, create_tables
from gopher_social.models import Role

logger = logging.getLogger(__name__)

DEFAULT_ROLES: tuple[tuple[str, int, str], ...] = (
    ("user", 1, "A user can create posts and comments"),
    ("moderator", 2, "A moderator can update other users' posts"),
    ("admin", 3, "An admin can update and delete other users' posts"),
)


def seed_roles(session: Session) -> int:
    """Insert the missing built-in roles; returns how many were added."""
    existing = set(session.execute(select(Role.name)).scalars())
    added = 0
    for name, level, description in DEFAULT_ROLES:
        if name in existing:
            continue
        session.add(Role(name=name, level=level, description=description))
        added += 1
    session.commit()
    return added


def init_db() -> None:
    """Initialize the database by creating all tables and the roles."""
    create_tables()
    with SessionLocal() as session:
        added = seed_roles(session)
    logger.info("database initialized roles_added=%s", added)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
