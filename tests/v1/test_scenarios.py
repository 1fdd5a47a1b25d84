# tests/v1/test_scenarios.py
"""End-to-end flows across registration, posts, follows and the feed."""

from datetime import UTC, datetime, timedelta

from fastapi import status
from sqlalchemy import select

from gopher_social.models import User


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def test_registration_activation_and_login(client, mailer):
    registered = client.post(
        "/v1/authentication/user",
        json={"username": "alice", "email": "a@x.com", "password": "password1"},
    )
    assert registered.status_code == status.HTTP_201_CREATED
    assert registered.json()["is_active"] is False
    assert len(mailer.sent) == 1

    # Inactive users cannot log in yet.
    early = client.post(
        "/v1/authentication/token", json={"username": "alice", "password": "password1"}
    )
    assert early.status_code == status.HTTP_401_UNAUTHORIZED

    token = mailer.last_token
    assert client.put(f"/v1/users/activate/{token}").status_code == status.HTTP_204_NO_CONTENT

    issued = client.post(
        "/v1/authentication/token", json={"username": "alice", "password": "password1"}
    )
    assert issued.status_code == status.HTTP_201_CREATED
    user_id = registered.json()["id"]
    profile = client.get(f"/v1/users/{user_id}", headers=_bearer(issued.json()))
    assert profile.status_code == status.HTTP_200_OK
    assert profile.json()["is_active"] is True

    assert client.put(f"/v1/users/activate/{token}").status_code == status.HTTP_400_BAD_REQUEST


def test_duplicate_email_registration(client):
    payload = {"username": "alice", "email": "a@x.com", "password": "password1"}
    client.post("/v1/authentication/user", json=payload)

    response = client.post(
        "/v1/authentication/user", json={**payload, "username": "alice2"}
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "email" in response.json()["error"]


def test_optimistic_update_race(client, other_auth_token, test_post):
    url = f"/v1/posts/{test_post.id}"
    seen_by_a = client.get(url, headers=other_auth_token).json()["version"]
    seen_by_b = client.get(url, headers=other_auth_token).json()["version"]
    assert seen_by_a == seen_by_b == 0

    winner = client.patch(url, json={"title": "A", "version": seen_by_a}, headers=other_auth_token)
    assert winner.status_code == status.HTTP_200_OK
    assert winner.json()["version"] == 1

    loser = client.patch(url, json={"title": "B", "version": seen_by_b}, headers=other_auth_token)
    assert loser.status_code == status.HTTP_404_NOT_FOUND

    refreshed = client.get(url, headers=other_auth_token).json()
    assert refreshed["version"] == 1
    assert refreshed["title"] == "A"
    retry = client.patch(
        url, json={"title": "B", "version": refreshed["version"]}, headers=other_auth_token
    )
    assert retry.status_code == status.HTTP_200_OK
    assert retry.json()["version"] == 2


def test_role_precedence_on_delete(client, auth_token, test_post, make_user, headers_for):
    denied = client.delete(f"/v1/posts/{test_post.id}", headers=auth_token)
    assert denied.status_code == status.HTTP_403_FORBIDDEN

    carol = make_user("carol", role="admin")
    allowed = client.delete(f"/v1/posts/{test_post.id}", headers=headers_for(carol))
    assert allowed.status_code == status.HTTP_200_OK


def test_follow_conflict(client, auth_token, other_user):
    url = f"/v1/users/{other_user.id}/follow"
    assert client.put(url, headers=auth_token).status_code == status.HTTP_204_NO_CONTENT
    assert client.put(url, headers=auth_token).status_code == status.HTTP_409_CONFLICT


def test_feed_composition(
    client, auth_token, test_user, other_user, make_user, make_post, make_comment, db_session
):
    carol = make_user("carol")
    dave = make_user("dave")
    posts = [
        make_post(other_user, "bob 1"),
        make_post(carol, "carol 1"),
        make_post(test_user, "alice 1"),
        make_post(other_user, "bob 2"),
        make_post(carol, "carol 2", ["t1"]),
    ]
    make_post(dave, "dave 1")
    start = datetime(2024, 1, 1, tzinfo=UTC)
    for i, post in enumerate(posts):
        post.created_at = start + timedelta(hours=i)
    db_session.commit()
    make_comment(posts[0], dave)
    make_comment(posts[0], test_user)
    make_comment(posts[4], carol)

    client.put(f"/v1/users/{other_user.id}/follow", headers=auth_token)
    client.put(f"/v1/users/{carol.id}/follow", headers=auth_token)

    feed = client.get("/v1/users/feed?limit=10&sort=desc", headers=auth_token)
    assert feed.status_code == status.HTTP_200_OK
    entries = feed.json()
    assert [entry["id"] for entry in entries] == [post.id for post in reversed(posts)]
    counts = {entry["id"]: entry["comments_count"] for entry in entries}
    assert counts[posts[0].id] == 2
    assert counts[posts[4].id] == 1
    assert counts[posts[2].id] == 0

    tagged = client.get("/v1/users/feed?tags=t1", headers=auth_token).json()
    assert [entry["id"] for entry in tagged] == [posts[4].id]


def test_failed_welcome_mail_rolls_back_registration(client, mailer, db_session):
    mailer.fail = True
    response = client.post(
        "/v1/authentication/user",
        json={"username": "alice", "email": "a@x.com", "password": "password1"},
    )

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert db_session.execute(select(User).where(User.email == "a@x.com")).first() is None

    mailer.fail = False
    retried = client.post(
        "/v1/authentication/user",
        json={"username": "alice", "email": "a@x.com", "password": "password1"},
    )
    assert retried.status_code == status.HTTP_201_CREATED


def test_no_response_exposes_password(client, mailer, auth_token, test_user, test_post):
    responses = [
        client.post(
            "/v1/authentication/user",
            json={"username": "zed", "email": "z@x.com", "password": "password1"},
        ),
        client.get(f"/v1/users/{test_user.id}", headers=auth_token),
        client.get(f"/v1/posts/{test_post.id}", headers=auth_token),
        client.get("/v1/users/feed", headers=auth_token),
    ]
    for response in responses:
        assert response.status_code < 400
        assert "password" not in response.text
