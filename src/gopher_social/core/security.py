"""Credential helpers: password hashing, invitation tokens and basic auth."""
from __future__ import annotations

import hashlib
import secrets
import uuid

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)


def hash_password(password: str) -> bytes:
    """Return the salted bcrypt hash of ``password``."""
    return pwd_context.hash(password).encode("utf-8")


def verify_password(password: str, hashed: bytes | str) -> bool:
    """Check ``password`` against a stored hash in constant time."""
    if isinstance(hashed, bytes):
        hashed = hashed.decode("utf-8")
    try:
        return pwd_context.verify(password, hashed)
    except ValueError:
        return False


def generate_invitation_token() -> str:
    """Return a fresh opaque invitation token (sent by mail, never stored)."""
    return str(uuid.uuid4())


def hash_token(token: str) -> str:
    """Return the SHA-256 hex digest of an invitation token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def credentials_match(given: str, expected: str) -> bool:
    """Constant-time comparison of two secrets."""
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))
