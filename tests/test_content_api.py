"""Tests for blog and event endpoints, including RSVP waitlisting."""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from conftest import auth_headers, make_user
from app.models.content import BlogPost, BlogCategory, Event, EventRsvp, RsvpStatus
from app.services.time_utils import utcnow

pytestmark = pytest.mark.api


def _post(slug, published=True, days_ago=1, **kwargs):
    return BlogPost(
        title=kwargs.pop("title", slug.replace("-", " ").title()),
        slug=slug,
        content=kwargs.pop("content", "Body text"),
        published=published,
        published_at=utcnow() - timedelta(days=days_ago),
        **kwargs,
    )


def _event(slug, days_ahead=3, **kwargs):
    start = utcnow() + timedelta(days=days_ahead)
    return Event(
        title=slug.title(), slug=slug, description="Community meetup", start_time=start,
        end_time=start + timedelta(hours=2), location="Main floor", host="CitizenSpace", **kwargs,
    )


class TestBlog:
    @pytest.fixture(autouse=True)
    def posts(self, db_session):
        db_session.add_all([
            BlogCategory(name="Community", slug="community"),
            BlogCategory(name="Web3", slug="web3"),
            _post("hello-members", category="community", tags=["News", "welcome"], days_ago=2),
            _post("nft-perks", category="web3", tags=["nft"], excerpt="Holder discounts explained"),
            _post("draft-post", published=False, category="community"),
        ])
        db_session.commit()

    def test_only_published_newest_first(self, client):
        body = client.get("/blog/posts").json()
        assert body["total"] == 2
        assert [p["slug"] for p in body["posts"]] == ["nft-perks", "hello-members"]

    def test_tag_filter_is_case_insensitive(self, client):
        body = client.get("/blog/posts", params={"tag": "news"}).json()
        assert [p["slug"] for p in body["posts"]] == ["hello-members"]

    def test_search(self, client):
        body = client.get("/blog/posts", params={"search": "discounts"}).json()
        assert [p["slug"] for p in body["posts"]] == ["nft-perks"]

    def test_draft_not_found(self, client):
        assert client.get("/blog/posts/draft-post").status_code == 404
        assert client.get("/blog/posts/nft-perks").json()["content"] == "Body text"

    def test_category_counts(self, client):
        counts = {c["slug"]: c["post_count"] for c in client.get("/blog/categories").json()}
        assert counts == {"community": 1, "web3": 1}


class TestEvents:
    def test_past_events_hidden(self, client, db_session):
        db_session.add_all([_event("upcoming"), _event("last-week", days_ahead=-7)])
        db_session.commit()
        assert [e["slug"] for e in client.get("/events").json()] == ["upcoming"]
        assert len(client.get("/events", params={"include_past": True}).json()) == 2

    def test_rsvp_then_waitlist(self, client, db_session, member, nft_member):
        db_session.add(_event("demo-night", capacity=1))
        db_session.commit()
        first = client.post("/events/demo-night/rsvp", headers=auth_headers(member))
        assert first.status_code == 201
        assert first.json()["status"] == "confirmed"
        second = client.post("/events/demo-night/rsvp", headers=auth_headers(nft_member))
        assert second.json()["status"] == "waitlist"
        assert client.get("/events/demo-night").json()["spots_remaining"] == 0

    def test_duplicate_rsvp(self, client, db_session, member):
        db_session.add(_event("demo-night"))
        db_session.commit()
        client.post("/events/demo-night/rsvp", headers=auth_headers(member))
        assert client.post("/events/demo-night/rsvp", headers=auth_headers(member)).status_code == 409

    def test_cancel_promotes_waitlist(self, client, db_session, member, nft_member):
        db_session.add(_event("demo-night", capacity=1))
        db_session.commit()
        client.post("/events/demo-night/rsvp", headers=auth_headers(member))
        client.post("/events/demo-night/rsvp", headers=auth_headers(nft_member))
        response = client.delete("/events/demo-night/rsvp", headers=auth_headers(member))
        assert response.json()["status"] == "cancelled"
        promoted = db_session.query(EventRsvp).filter(EventRsvp.user_id == nft_member.id).one()
        db_session.refresh(promoted)
        assert promoted.status == RsvpStatus.confirmed

    def test_ended_event(self, client, db_session, member):
        db_session.add(_event("old", days_ahead=-2))
        db_session.commit()
        assert client.post("/events/old/rsvp", headers=auth_headers(member)).status_code == 400

    def test_paid_event_requires_payments(self, client, db_session, member):
        db_session.add(_event("workshop", price=15))
        db_session.commit()
        assert client.post("/events/workshop/rsvp", headers=auth_headers(member)).status_code == 503

    def test_paid_event_opens_intent(self, client, db_session):
        guest = make_user(db_session, email="guest@example.com")
        db_session.add(_event("workshop", price=15))
        db_session.commit()
        with patch("app.services.payments.stripe_configured", return_value=True), \
                patch("app.services.payments.get_or_create_customer", return_value=SimpleNamespace(id="cus_9")), \
                patch("app.services.payments.create_payment_intent", return_value={"id": "pi_9", "client_secret": "s"}) as intent:
            response = client.post("/events/workshop/rsvp", headers=auth_headers(guest))
        body = response.json()
        assert body["payment_status"] == "pending"
        assert body["client_secret"] == "s"
        assert intent.call_args.args[0] == 1500
