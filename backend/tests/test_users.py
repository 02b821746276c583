"""Tests for profile and admin user management endpoints."""

import pytest
from app.core.auth import verify_password
from app.models.comment import Comment
from app.models.user import User


@pytest.mark.integration
class TestProfile:
    def test_get_profile(self, authenticated_client, test_user):
        response = authenticated_client.get("/api/users/profile")

        assert response.status_code == 200
        assert response.json()["username"] == test_user.username

    def test_update_profile(self, authenticated_client, db_session, test_user):
        response = authenticated_client.put(
            "/api/users/profile",
            json={"username": "reader2", "password": "new-password"},
        )

        assert response.status_code == 200
        assert response.json()["username"] == "reader2"
        db_session.refresh(test_user)
        assert verify_password("new-password", test_user.password_hash)

    def test_update_profile_email_taken(self, authenticated_client, admin_user):
        response = authenticated_client.put(
            "/api/users/profile", json={"email": admin_user.email}
        )
        assert response.status_code == 400

    def test_profile_requires_auth(self, client):
        assert client.get("/api/users/profile").status_code == 401


@pytest.mark.integration
class TestAdminUsers:
    def test_list_users(self, admin_client, test_user, admin_user):
        response = admin_client.get("/api/users")

        assert response.status_code == 200
        ids = {u["id"] for u in response.json()}
        assert ids == {test_user.id, admin_user.id}
        assert all("password_hash" not in u for u in response.json())

    def test_get_user(self, admin_client, test_user):
        response = admin_client.get(f"/api/users/{test_user.id}")
        assert response.status_code == 200
        assert response.json()["email"] == test_user.email

    def test_get_missing_user(self, admin_client):
        assert admin_client.get("/api/users/999").status_code == 404

    def test_promote_user(self, admin_client, db_session, test_user):
        response = admin_client.put(f"/api/users/{test_user.id}", json={"is_admin": True})

        assert response.status_code == 200
        db_session.refresh(test_user)
        assert test_user.is_admin is True

    def test_admin_cannot_demote_self(self, admin_client, admin_user):
        response = admin_client.put(f"/api/users/{admin_user.id}", json={"is_admin": False})
        assert response.status_code == 400

    def test_delete_user_detaches_comments(
        self, admin_client, db_session, test_user, test_post
    ):
        comment = Comment(
            post_id=test_post.id,
            user_id=test_user.id,
            content="Hello",
            author_name="reader",
            author_email=test_user.email,
            is_approved=True,
        )
        db_session.add(comment)
        db_session.commit()
        comment_id = comment.id

        response = admin_client.delete(f"/api/users/{test_user.id}")

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.query(User).filter(User.username == "reader").first() is None
        kept = db_session.query(Comment).filter(Comment.id == comment_id).first()
        assert kept is not None
        assert kept.user_id is None

    def test_delete_post_author_is_refused(self, admin_client, db_session, test_post):
        other_admin = User(
            username="editor",
            email="editor@example.com",
            password_hash="x",
            is_admin=True,
        )
        db_session.add(other_admin)
        db_session.commit()
        test_post.author_id = other_admin.id
        db_session.commit()

        response = admin_client.delete(f"/api/users/{other_admin.id}")
        assert response.status_code == 400

    def test_admin_cannot_delete_self(self, admin_client, admin_user):
        response = admin_client.delete(f"/api/users/{admin_user.id}")
        assert response.status_code == 400


@pytest.mark.integration
class TestAuthors:
    def test_list_only_users_with_posts(self, client, test_post, admin_user, test_user):
        response = client.get("/api/authors")

        assert response.status_code == 200
        assert response.json() == [{"id": admin_user.id, "username": "admin"}]

    def test_list_empty(self, client, test_user):
        response = client.get("/api/authors")
        assert response.status_code == 200
        assert response.json() == []

    def test_get_author(self, client, test_post, admin_user):
        response = client.get(f"/api/authors/{admin_user.id}")

        assert response.status_code == 200
        data = response.json()
        assert data == {"id": admin_user.id, "username": "admin"}
        assert "email" not in data
        assert "password_hash" not in data

    def test_get_author_invalid_id(self, client):
        response = client.get("/api/authors/abc")
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid author ID"

    def test_get_author_not_found(self, client):
        response = client.get("/api/authors/999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Author not found"

    def test_reader_without_posts_is_not_an_author(self, client, test_post, test_user):
        response = client.get(f"/api/authors/{test_user.id}")
        assert response.status_code == 404
