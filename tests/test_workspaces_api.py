"""Tests for workspace listing, availability and admin management."""

from datetime import date, timedelta

import pytest

from conftest import auth_headers
from app.models.audit_log import AuditLog
from app.models.booking import Booking, BookingType, BookingStatus
from app.models.workspace import Workspace

pytestmark = pytest.mark.api


class TestPublicListing:
    def test_list_with_nft_price(self, client, hot_desk, focus_room):
        response = client.get("/workspaces")
        assert response.status_code == 200
        rows = response.json()
        assert [r["name"] for r in rows] == [hot_desk.name, focus_room.name]
        assert rows[1]["nft_holder_price"] == 12.50

    def test_filters(self, client, hot_desk, focus_room):
        assert len(client.get("/workspaces", params={"resource_category": "meeting-room"}).json()) == 1
        assert len(client.get("/workspaces", params={"min_capacity": 2}).json()) == 1
        assert len(client.get("/workspaces", params={"max_price": 10}).json()) == 1

    def test_hot_desks_and_rooms(self, client, hot_desk, focus_room):
        assert [w["id"] for w in client.get("/workspaces/hot-desks").json()] == [hot_desk.id]
        assert [w["id"] for w in client.get("/workspaces/meeting-rooms").json()] == [focus_room.id]

    def test_not_found(self, client):
        assert client.get("/workspaces/404").status_code == 404


class TestAvailability:
    def test_slots_around_booking(self, client, db_session, member, hot_desk, future_date):
        db_session.add(Booking(
            user_id=member.id, workspace_id=hot_desk.id, booking_type=BookingType.hourly_desk,
            booking_date=future_date, start_time="10:00", end_time="12:00", duration_hours=2,
            status=BookingStatus.confirmed, confirmation_code="SLOT0001",
        ))
        db_session.commit()
        response = client.get(
            "/workspaces/availability",
            params={"date": future_date.isoformat(), "workspace_id": hot_desk.id, "start_time": "11:00", "end_time": "13:00"},
        )
        assert response.status_code == 200
        result = response.json()["workspaces"][0]
        assert result["is_available"] is False
        assert result["booked_slots"] == [{"start_time": "10:00", "end_time": "12:00", "available": False}]
        assert len(result["available_slots"]) == 2

    def test_past_date_rejected(self, client, hot_desk):
        response = client.get("/workspaces/availability", params={"date": (date.today() - timedelta(days=2)).isoformat()})
        assert response.status_code == 400


class TestAdminManagement:
    payload = {
        "name": "Quiet Pod",
        "type": "communications-pod",
        "resource_category": "meeting-room",
        "capacity": 1,
        "base_price_hourly": 5,
        "requires_credits": True,
        "min_duration": 0.5,
        "max_duration": 4,
    }

    def test_members_cannot_create(self, client, member):
        assert client.post("/workspaces", json=self.payload, headers=auth_headers(member)).status_code == 403

    def test_create_update_delete_are_audited(self, client, admin, db_session):
        created = client.post("/workspaces", json=self.payload, headers=auth_headers(admin))
        assert created.status_code == 201
        workspace_id = created.json()["id"]

        updated = client.patch(f"/workspaces/{workspace_id}", json={"capacity": 2}, headers=auth_headers(admin))
        assert updated.status_code == 200
        assert updated.json()["capacity"] == 2

        assert client.delete(f"/workspaces/{workspace_id}", headers=auth_headers(admin)).status_code == 204
        assert db_session.get(Workspace, workspace_id) is None
        actions = [a for (a,) in db_session.query(AuditLog.action).order_by(AuditLog.id)]
        assert actions == ["create", "update", "delete"]

    def test_invalid_duration_range(self, client, admin, hot_desk):
        response = client.patch(f"/workspaces/{hot_desk.id}", json={"max_duration": 0.5}, headers=auth_headers(admin))
        assert response.status_code == 400

    def test_delete_with_upcoming_booking(self, client, admin, member, hot_desk, future_date):
        client.post(
            "/bookings/hourly-desk",
            json={"workspace_id": hot_desk.id, "booking_date": future_date.isoformat(), "start_time": "09:00", "end_time": "10:00"},
            headers=auth_headers(member),
        )
        assert client.delete(f"/workspaces/{hot_desk.id}", headers=auth_headers(admin)).status_code == 409

    def test_delete_with_history_retires(self, client, admin, member, hot_desk, future_date, db_session):
        db_session.add(Booking(
            user_id=member.id, workspace_id=hot_desk.id, booking_type=BookingType.hourly_desk,
            booking_date=date.today() - timedelta(days=3), start_time="09:00", end_time="10:00", duration_hours=1,
            status=BookingStatus.completed, confirmation_code="HIST0001",
        ))
        db_session.commit()
        assert client.delete(f"/workspaces/{hot_desk.id}", headers=auth_headers(admin)).status_code == 204
        db_session.refresh(hot_desk)
        assert hot_desk.available is False
