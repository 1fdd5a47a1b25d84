"""Database session configuration."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from gopher_social.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import gopher_social.models  # noqa: E402,F401


def _engine_options() -> dict[str, Any]:
    url = settings.database_url_sync
    if not url.startswith("postgresql"):
        return {}
    # Every statement is bounded by the query timeout on the server side.
    timeout_ms = int(settings.db_query_timeout_seconds * 1000)
    return {
        "pool_size": settings.db_max_idle_conns,
        "max_overflow": max(0, settings.db_max_open_conns - settings.db_max_idle_conns),
        "pool_recycle": settings.db_max_idle_time_seconds,
        "connect_args": {"options": f"-c statement_timeout={timeout_ms}"},
    }


engine = create_engine(
    settings.database_url_sync,
    pool_pre_ping=True,
    echo=settings.sql_debug,
    **_engine_options(),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)


def drop_tables() -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=engine)
