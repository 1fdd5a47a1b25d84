# tests/conftest.py
from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Generator, Iterator
from itertools import count
from typing import Any

os.environ.setdefault("DB_ADDR", "sqlite://")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("RATE_LIMITER_ENABLED", "false")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gopher_social.core.security import hash_password, pwd_context
from gopher_social.db.session import Base
from gopher_social.db.session import get_db as app_get_session
from gopher_social.init_db import seed_roles
from gopher_social.main import create_app
from gopher_social.models import Comment, Post, User
from gopher_social.repositories import Storage
from gopher_social.services.authenticator import get_authenticator
from gopher_social.services.mailer import MailerError, get_mailer

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "password1"

# Minimum bcrypt cost keeps the suite fast.
pwd_context.update(bcrypt__rounds=4)

_USER_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:  # pragma: no cover - driver hook
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    seed_roles(session)
    try:
        yield session
    finally:
        session.close()
        # Repositories commit, so every test starts from empty tables.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def storage(db_session: Session) -> Storage:
    return Storage(db_session)


class RecordingMailer:
    """Mailer double that keeps every message instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = False
        self.delay = 0.0

    async def send(
        self,
        template_name: str,
        username: str,
        email: str,
        data: dict[str, Any],
        *,
        is_sandbox: bool,
    ) -> int:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise MailerError("failed to send email after 3 attempts")
        self.sent.append(
            {
                "template": template_name,
                "username": username,
                "email": email,
                "data": dict(data),
                "is_sandbox": is_sandbox,
            }
        )
        return 202

    @property
    def last_token(self) -> str:
        return self.sent[-1]["data"]["activation_url"].rsplit("/", 1)[1]


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def app(db_session: Session, mailer: RecordingMailer) -> Iterator[FastAPI]:
    application = create_app()

    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    application.dependency_overrides[app_get_session] = _get_session_override
    application.dependency_overrides[get_mailer] = lambda: mailer
    try:
        yield application
    finally:
        application.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_user(storage: Storage) -> Callable[..., User]:
    """Return a factory persisting users with ``TEST_PASSWORD``."""

    def _make_user(
        username: str | None = None,
        *,
        role: str = "user",
        active: bool = True,
    ) -> User:
        name = username or f"user{next(_USER_COUNTER)}"
        user = User(
            username=name,
            email=f"{name}@example.com",
            password=hash_password(TEST_PASSWORD),
            is_active=active,
        )
        return storage.users.create(user, role)

    return _make_user


def auth_headers_for(user_id: int) -> dict[str, str]:
    token = get_authenticator().issue_user_token(user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def test_user(make_user: Callable[..., User]) -> User:
    return make_user("alice")


@pytest.fixture()
def other_user(make_user: Callable[..., User]) -> User:
    return make_user("bob")


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return auth_headers_for(test_user.id)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return auth_headers_for(other_user.id)


@pytest.fixture()
def make_post(storage: Storage) -> Callable[..., Post]:
    def _make_post(author: User, title: str = "A post", tags: list[str] | None = None) -> Post:
        return storage.posts.create(
            Post(title=title, content=f"{title} content", tags=tags or [], user_id=author.id)
        )

    return _make_post


@pytest.fixture()
def test_post(make_post: Callable[..., Post], other_user: User) -> Post:
    """A post authored by ``other_user``."""
    return make_post(other_user, "Bob's post", ["go"])


@pytest.fixture()
def make_comment(storage: Storage) -> Callable[..., Comment]:
    def _make_comment(post: Post, author: User, content: str = "nice") -> Comment:
        return storage.comments.create(Comment(post_id=post.id, user_id=author.id, content=content))

    return _make_comment


@pytest.fixture()
def headers_for() -> Callable[[User], dict[str, str]]:
    """Return a helper building bearer headers for any user."""
    return lambda user: auth_headers_for(user.id)
