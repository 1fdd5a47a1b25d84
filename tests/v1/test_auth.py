# tests/v1/test_auth.py
"""Tests for registration, activation and token issuing."""

import asyncio

from fastapi import status
from sqlalchemy import select

from gopher_social.api.v1.endpoints import auth as auth_endpoints
from gopher_social.core.security import hash_password, hash_token, verify_password
from gopher_social.models import User, UserInvitation

REGISTER = "/v1/authentication/user"
TOKEN = "/v1/authentication/token"


def _register(client, username="alice", email="a@x.com", password="password1"):
    return client.post(
        REGISTER,
        json={"username": username, "email": email, "password": password},
    )


def test_register_creates_inactive_user_and_sends_invite(client, mailer):
    response = _register(client)

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["username"] == "alice"
    assert body["email"] == "a@x.com"
    assert body["is_active"] is False
    assert body["role"]["name"] == "user"
    assert "password" not in body

    assert len(mailer.sent) == 1
    message = mailer.sent[0]
    assert message["template"] == "user_invitation"
    assert message["email"] == "a@x.com"
    assert message["is_sandbox"] is True
    assert message["data"]["activation_url"].startswith("http://localhost:4000/users/activate/")


def test_register_persists_only_token_hash(client, mailer, db_session):
    _register(client)
    stored = db_session.execute(select(UserInvitation.token)).scalar_one()

    assert stored == hash_token(mailer.last_token)
    assert mailer.last_token not in stored


def test_register_duplicate_email(client):
    _register(client)
    response = _register(client, username="alice2")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "email" in response.json()["error"]


def test_register_duplicate_username(client):
    _register(client)
    response = _register(client, email="other@x.com")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "username" in response.json()["error"]


def test_register_validation(client):
    assert _register(client, email="not-an-email").status_code == status.HTTP_400_BAD_REQUEST
    assert _register(client, password="short").status_code == status.HTTP_400_BAD_REQUEST
    assert _register(client, password="x" * 73).status_code == status.HTTP_400_BAD_REQUEST
    assert _register(client, username="u" * 101).status_code == status.HTTP_400_BAD_REQUEST


def test_register_mail_failure_compensates(client, mailer, db_session):
    mailer.fail = True
    response = _register(client)

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"error": "internal server error"}
    assert db_session.execute(select(User)).first() is None
    assert db_session.execute(select(UserInvitation)).first() is None


def test_activate_then_reuse(client, mailer):
    _register(client)
    token = mailer.last_token

    assert client.put(f"/v1/users/activate/{token}").status_code == status.HTTP_204_NO_CONTENT
    again = client.put(f"/v1/users/activate/{token}")
    assert again.status_code == status.HTTP_400_BAD_REQUEST


def test_activate_unknown_token(client):
    response = client.put("/v1/users/activate/nope")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "error" in response.json()


def test_token_for_active_user(client, test_user):
    response = client.post(TOKEN, json={"username": "alice", "password": "password1"})

    assert response.status_code == status.HTTP_201_CREATED
    token = response.json()
    assert isinstance(token, str)
    me = client.get(f"/v1/users/{test_user.id}", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == status.HTTP_200_OK


def test_token_wrong_password(client, test_user):
    response = client.post(TOKEN, json={"username": "alice", "password": "password2"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_token_unknown_or_inactive_user(client, make_user):
    make_user("sleepy", active=False)
    for username in ("ghost", "sleepy"):
        response = client.post(TOKEN, json={"username": username, "password": "password1"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_register_cancelled_during_mail_compensates(app, client, mailer, db_session):
    app.state.request_timeout = 0.05
    mailer.delay = 5.0

    response = _register(client)

    assert response.status_code == status.HTTP_504_GATEWAY_TIMEOUT
    assert mailer.sent == []
    assert db_session.execute(select(User)).first() is None
    assert db_session.execute(select(UserInvitation)).first() is None

    app.state.request_timeout = 5.0
    mailer.delay = 0.0
    assert _register(client).status_code == status.HTTP_201_CREATED


def _record_thread(seen: list[str], func):
    def wrapper(*args):
        try:
            asyncio.get_running_loop()
            seen.append("event-loop")
        except RuntimeError:
            seen.append("worker")
        return func(*args)

    return wrapper


def test_password_hashing_runs_off_the_event_loop(client, mocker):
    seen: list[str] = []
    mocker.patch.object(
        auth_endpoints, "hash_password", side_effect=_record_thread(seen, hash_password)
    )

    assert _register(client).status_code == status.HTTP_201_CREATED
    assert seen == ["worker"]


def test_password_check_runs_off_the_event_loop(client, test_user, mocker):
    seen: list[str] = []
    mocker.patch.object(
        auth_endpoints, "verify_password", side_effect=_record_thread(seen, verify_password)
    )

    response = client.post(TOKEN, json={"username": "alice", "password": "password1"})
    assert response.status_code == status.HTTP_201_CREATED
    assert seen == ["worker"]
