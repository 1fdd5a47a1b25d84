"""Errors raised by the storage layer.

Handlers translate these into API errors; driver exceptions never leave a
repository unclassified when they carry a meaning the API cares about.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

# Postgres SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


class StoreError(RuntimeError):
    """Base class for storage failures with a domain meaning."""


class RecordNotFoundError(StoreError):
    """The row does not exist (or, for versioned updates, is stale)."""

    def __init__(self, message: str = "resource not found") -> None:
        super().__init__(message)


class RecordConflictError(StoreError):
    """The write collides with an existing row."""

    def __init__(self, message: str = "resource already exists") -> None:
        super().__init__(message)


class DuplicateEmailError(RecordConflictError):
    def __init__(self) -> None:
        super().__init__("a user with that email already exists")


class DuplicateUsernameError(RecordConflictError):
    def __init__(self) -> None:
        super().__init__("a user with that username already exists")


def _sqlstate(err: IntegrityError) -> str | None:
    orig = err.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _constraint_name(err: IntegrityError) -> str:
    diag = getattr(err.orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    return name or str(err.orig)


def is_unique_violation(err: IntegrityError) -> bool:
    code = _sqlstate(err)
    if code is not None:
        return code == UNIQUE_VIOLATION
    message = str(err.orig)
    return "UNIQUE constraint failed" in message or "PRIMARY KEY" in message


def is_foreign_key_violation(err: IntegrityError) -> bool:
    code = _sqlstate(err)
    if code is not None:
        return code == FOREIGN_KEY_VIOLATION
    return "FOREIGN KEY constraint failed" in str(err.orig)


def violated_column(err: IntegrityError, *columns: str) -> str | None:
    """Return the first of ``columns`` named by the violated constraint."""
    target = _constraint_name(err)
    for column in columns:
        # users_email_key (Postgres) / users.email (SQLite)
        if f"_{column}_" in target or f".{column}" in target:
            return column
    return None
