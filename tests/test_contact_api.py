"""Tests for the contact form and newsletter endpoints."""

from unittest.mock import patch

import pytest

from conftest import auth_headers
from app.models.contact import ContactSubmission, NewsletterSubscriber, SubscriberStatus

pytestmark = pytest.mark.api


class TestContactForm:
    payload = {"name": "Ada", "email": "Ada@Example.com", "topic": "booking", "message": "Can I book the boardroom?"}

    def test_stores_and_notifies(self, client, db_session):
        with patch("app.routers.contact.send_contact_notification", return_value=True) as notify:
            response = client.post("/contact", json=self.payload)
        assert response.status_code == 201
        submission = db_session.get(ContactSubmission, response.json()["id"])
        assert submission.email == "ada@example.com"
        assert submission.user_id is None
        notify.assert_called_once()

    def test_email_failure_still_succeeds(self, client):
        with patch("app.routers.contact.send_contact_notification", return_value=False):
            assert client.post("/contact", json=self.payload).status_code == 201

    def test_links_logged_in_member(self, client, db_session, member):
        response = client.post("/contact", json=self.payload, headers=auth_headers(member))
        assert db_session.get(ContactSubmission, response.json()["id"]).user_id == member.id

    def test_message_too_short(self, client):
        response = client.post("/contact", json={**self.payload, "message": "hi"})
        assert response.status_code == 422


class TestNewsletter:
    def test_subscribe_flow(self, client, db_session):
        first = client.post("/newsletter/subscribe", json={"email": "reader@example.com"})
        assert first.json()["status"] == "subscribed"
        again = client.post("/newsletter/subscribe", json={"email": "READER@example.com"})
        assert again.json()["status"] == "already_subscribed"

        subscriber = db_session.query(NewsletterSubscriber).one()
        assert subscriber.preferences == {"events": True, "blog": True, "offers": True}
        assert subscriber.source == "website"

    def test_unsubscribe_then_resubscribe(self, client, db_session):
        client.post("/newsletter/subscribe", json={"email": "reader@example.com"})
        assert client.post("/newsletter/unsubscribe", json={"email": "reader@example.com"}).json()["status"] == "unsubscribed"
        assert db_session.query(NewsletterSubscriber).one().status == SubscriberStatus.unsubscribed

        response = client.post("/newsletter/subscribe", json={"email": "reader@example.com", "preferences": {"offers": False}})
        assert response.json()["status"] == "resubscribed"
        db_session.expire_all()
        assert db_session.query(NewsletterSubscriber).one().preferences["offers"] is False

    def test_unsubscribe_unknown_address(self, client):
        response = client.post("/newsletter/unsubscribe", json={"email": "ghost@example.com"})
        assert response.status_code == 200
        assert response.json()["status"] == "unsubscribed"

    def test_preferences(self, client, db_session):
        client.post("/newsletter/subscribe", json={"email": "reader@example.com"})
        response = client.put("/newsletter/preferences", json={"email": "reader@example.com", "preferences": {"blog": False}})
        assert response.json()["status"] == "updated"
        db_session.expire_all()
        assert db_session.query(NewsletterSubscriber).one().preferences == {"events": True, "blog": False, "offers": True}

    def test_preferences_for_non_subscriber(self, client):
        response = client.put("/newsletter/preferences", json={"email": "ghost@example.com", "preferences": {"blog": False}})
        assert response.json()["status"] == "not_subscribed"
