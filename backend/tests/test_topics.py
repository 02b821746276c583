"""Tests for topic submission and admin topic management."""

import pytest
from datetime import datetime, timedelta, timezone
from app.models.topic import Topic


@pytest.mark.integration
class TestTopicSubmission:
    def test_guest_submission(self, client, db_session, test_category):
        response = client.post(
            "/api/topics/submit",
            json={
                "title": "Solana outages",
                "description": "What caused the network halts?",
                "category_id": test_category.id,
                "email": "Guest@Example.com",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["topic"]["status"] == "pending"
        assert data["topic"]["email"] == "guest@example.com"
        assert data["topic"]["category"]["slug"] == "crypto"
        assert db_session.query(Topic).count() == 1

    def test_guest_submission_requires_email(self, client, test_category):
        response = client.post(
            "/api/topics/submit",
            json={
                "title": "Solana outages",
                "description": "What caused the network halts?",
                "category_id": test_category.id,
            },
        )
        assert response.status_code == 400

    def test_logged_in_submission_uses_account_email(
        self, authenticated_client, test_user, test_category
    ):
        response = authenticated_client.post(
            "/api/topics/submit",
            json={
                "title": "Stablecoin regulation",
                "description": "What the new rules mean",
                "category_id": test_category.id,
            },
        )

        assert response.status_code == 201
        assert response.json()["topic"]["user_id"] == test_user.id
        assert response.json()["topic"]["email"] == test_user.email

    def test_submission_unknown_category(self, client):
        response = client.post(
            "/api/topics/submit",
            json={
                "title": "Anything",
                "description": "Anything",
                "category_id": 999,
                "email": "guest@example.com",
            },
        )
        assert response.status_code == 404


@pytest.mark.integration
class TestTopicAdmin:
    def test_list_topics(self, admin_client, test_topic):
        response = admin_client.get("/api/topics")

        assert response.status_code == 200
        data = response.json()
        assert [t["id"] for t in data["topics"]] == [test_topic.id]
        assert data["pagination"]["total"] == 1

    def test_list_topics_status_filter(self, admin_client, test_topic):
        assert admin_client.get("/api/topics?status=approved").json()["topics"] == []
        assert len(admin_client.get("/api/topics?status=pending").json()["topics"]) == 1
        # Unknown values are ignored rather than rejected
        assert len(admin_client.get("/api/topics?status=bogus").json()["topics"]) == 1

    def test_list_topics_requires_admin(self, authenticated_client):
        response = authenticated_client.get("/api/topics")
        assert response.status_code == 403

    def test_schedule_topic(self, admin_client, db_session, test_topic):
        when = datetime.now(timezone.utc) + timedelta(days=2)

        response = admin_client.post(
            f"/api/topics/{test_topic.id}/schedule",
            json={"scheduled_for": when.isoformat()},
        )

        assert response.status_code == 200
        db_session.refresh(test_topic)
        assert test_topic.status == "approved"
        assert test_topic.scheduled_for is not None

    def test_schedule_topic_in_past(self, admin_client, db_session, test_topic):
        when = datetime.now(timezone.utc) - timedelta(hours=1)

        response = admin_client.post(
            f"/api/topics/{test_topic.id}/schedule",
            json={"scheduled_for": when.isoformat()},
        )

        assert response.status_code == 400
        db_session.refresh(test_topic)
        assert test_topic.status == "pending"

    def test_update_status(self, admin_client, db_session, test_topic):
        response = admin_client.patch(
            f"/api/topics/{test_topic.id}/status", json={"status": "rejected"}
        )

        assert response.status_code == 200
        assert response.json()["topic"]["status"] == "rejected"

    def test_update_status_invalid_value(self, admin_client, test_topic):
        response = admin_client.patch(
            f"/api/topics/{test_topic.id}/status", json={"status": "published"}
        )
        assert response.status_code == 422

    def test_delete_topic(self, admin_client, db_session, test_topic):
        response = admin_client.delete(f"/api/topics/{test_topic.id}")

        assert response.status_code == 200
        assert db_session.query(Topic).count() == 0

    def test_delete_missing_topic(self, admin_client):
        response = admin_client.delete("/api/topics/999")
        assert response.status_code == 404
