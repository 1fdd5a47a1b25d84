# tests/v1/test_posts.py
"""Tests for post CRUD and role based ownership checks."""

from fastapi import status


def test_create_post(client, auth_token, test_user):
    response = client.post(
        "/v1/posts",
        json={"title": "Hello", "content": "First post", "tags": ["go", "intro"]},
        headers=auth_token,
    )

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["title"] == "Hello"
    assert body["tags"] == ["go", "intro"]
    assert body["user_id"] == test_user.id
    assert body["version"] == 0
    assert body["comments"] == []


def test_create_post_validation(client, auth_token):
    too_long = client.post(
        "/v1/posts", json={"title": "t" * 101, "content": "x"}, headers=auth_token
    )
    empty = client.post("/v1/posts", json={"title": "t", "content": ""}, headers=auth_token)

    assert too_long.status_code == status.HTTP_400_BAD_REQUEST
    assert empty.status_code == status.HTTP_400_BAD_REQUEST


def test_get_post_includes_comments(client, auth_token, test_post, test_user, make_comment):
    make_comment(test_post, test_user, "first")
    make_comment(test_post, test_user, "second")

    response = client.get(f"/v1/posts/{test_post.id}", headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["id"] == test_post.id
    assert [comment["content"] for comment in body["comments"]] == ["first", "second"]


def test_get_missing_post(client, auth_token):
    response = client.get("/v1/posts/99999", headers=auth_token)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "post not found"}


def test_missing_post_without_auth_is_unauthorized(client):
    assert client.get("/v1/posts/99999").status_code == status.HTTP_401_UNAUTHORIZED


class TestUpdate:
    def test_author_can_update(self, client, other_auth_token, test_post):
        response = client.patch(
            f"/v1/posts/{test_post.id}",
            json={"title": "Edited"},
            headers=other_auth_token,
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["title"] == "Edited"
        assert body["content"] == test_post.content
        assert body["tags"] == ["go"]
        assert body["version"] == 1

    def test_other_user_is_forbidden(self, client, auth_token, test_post):
        response = client.patch(
            f"/v1/posts/{test_post.id}", json={"title": "Nope"}, headers=auth_token
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_moderator_can_update(self, client, make_user, headers_for, test_post):
        moderator = make_user("mod", role="moderator")
        response = client.patch(
            f"/v1/posts/{test_post.id}",
            json={"content": "moderated"},
            headers=headers_for(moderator),
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["content"] == "moderated"

    def test_stale_version_is_not_found(self, client, other_auth_token, test_post):
        url = f"/v1/posts/{test_post.id}"
        first = client.patch(url, json={"title": "One", "version": 0}, headers=other_auth_token)
        stale = client.patch(url, json={"title": "Two", "version": 0}, headers=other_auth_token)

        assert first.status_code == status.HTTP_200_OK
        assert stale.status_code == status.HTTP_404_NOT_FOUND
        current = client.get(url, headers=other_auth_token).json()
        assert current["title"] == "One"
        assert current["version"] == 1

    def test_update_validation(self, client, other_auth_token, test_post):
        response = client.patch(
            f"/v1/posts/{test_post.id}", json={"title": "t" * 101}, headers=other_auth_token
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestDelete:
    def test_author_can_delete(self, client, other_auth_token, test_post):
        response = client.delete(f"/v1/posts/{test_post.id}", headers=other_auth_token)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"message": "post deleted successfully!"}
        gone = client.get(f"/v1/posts/{test_post.id}", headers=other_auth_token)
        assert gone.status_code == status.HTTP_404_NOT_FOUND

    def test_moderator_cannot_delete(self, client, make_user, headers_for, test_post):
        moderator = make_user("mod", role="moderator")
        response = client.delete(f"/v1/posts/{test_post.id}", headers=headers_for(moderator))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_can_delete_with_comments(
        self, client, make_user, headers_for, test_post, test_user, make_comment
    ):
        make_comment(test_post, test_user)
        admin = make_user("root", role="admin")

        response = client.delete(f"/v1/posts/{test_post.id}", headers=headers_for(admin))
        assert response.status_code == status.HTTP_200_OK

    def test_delete_missing_post(self, client, auth_token):
        assert client.delete("/v1/posts/99999", headers=auth_token).status_code == 404
