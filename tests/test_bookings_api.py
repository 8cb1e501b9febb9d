"""Tests for the booking endpoints."""

from unittest.mock import patch

import pytest

from conftest import auth_headers
from app.models.booking import Booking, BookingStatus

pytestmark = pytest.mark.api


def _desk_payload(workspace, day, start="09:00", end="11:00"):
    return {"workspace_id": workspace.id, "booking_date": day.isoformat(), "start_time": start, "end_time": end}


class TestCreateBooking:
    def test_hourly_desk(self, client, member, hot_desk, future_date):
        with patch("app.routers.bookings.realtime.publish_booking_event") as publish:
            response = client.post("/bookings/hourly-desk", json=_desk_payload(hot_desk, future_date), headers=auth_headers(member))
        assert response.status_code == 201
        body = response.json()
        assert body["booking"]["status"] == "pending"
        assert body["booking"]["booking_type"] == "hourly-desk"
        assert body["requires_payment"] is True
        assert body["pricing"]["total_price"] == 7.00
        assert body["pricing_summary"][-1] == "Total: $7.00"
        assert publish.call_count == 1

    def test_membership_booking_confirms_and_emails(self, client, resident, hot_desk, future_date):
        with patch("app.routers.bookings.send_booking_confirmation", return_value=True) as email:
            response = client.post("/bookings/hourly-desk", json=_desk_payload(hot_desk, future_date), headers=auth_headers(resident))
        assert response.status_code == 201
        assert response.json()["booking"]["status"] == "confirmed"
        assert response.json()["requires_payment"] is False
        email.assert_called_once()

    def test_conflict(self, client, member, hot_desk, future_date):
        client.post("/bookings/hourly-desk", json=_desk_payload(hot_desk, future_date), headers=auth_headers(member))
        response = client.post(
            "/bookings/hourly-desk", json=_desk_payload(hot_desk, future_date, "10:00", "12:00"), headers=auth_headers(member)
        )
        assert response.status_code == 409

    def test_bad_time_format(self, client, member, hot_desk, future_date):
        response = client.post(
            "/bookings/hourly-desk", json=_desk_payload(hot_desk, future_date, "9am", "11:00"), headers=auth_headers(member)
        )
        assert response.status_code == 422

    @pytest.mark.parametrize("start,end", [("09:00zz", "11:00"), ("09:00", "11:00!!"), ("09:00:30", "11:00")])
    def test_trailing_characters_rejected(self, client, member, hot_desk, future_date, start, end):
        response = client.post(
            "/bookings/hourly-desk", json=_desk_payload(hot_desk, future_date, start, end), headers=auth_headers(member)
        )
        assert response.status_code == 422
        assert client.get("/bookings", headers=auth_headers(member)).json()["upcoming"] == []

    def test_padded_time_is_stripped(self, client, member, hot_desk, future_date):
        response = client.post(
            "/bookings/hourly-desk", json=_desk_payload(hot_desk, future_date, " 09:00 ", "11:00"), headers=auth_headers(member)
        )
        assert response.status_code == 201
        assert response.json()["booking"]["start_time"] == "09:00"

    def test_meeting_room_needs_membership(self, client, member, focus_room, future_date):
        payload = {**_desk_payload(focus_room, future_date), "attendees": 2}
        response = client.post("/bookings/meeting-room", json=payload, headers=auth_headers(member))
        assert response.status_code == 403

    def test_day_pass(self, client, nft_member, hot_desk, future_date):
        response = client.post(
            "/bookings/day-pass",
            json={"workspace_id": hot_desk.id, "booking_date": future_date.isoformat()},
            headers=auth_headers(nft_member),
        )
        assert response.status_code == 201
        assert response.json()["pricing"]["total_price"] == 14.50
        assert response.json()["booking"]["nft_discount_applied"] is True

    def test_requires_auth(self, client, hot_desk, future_date):
        assert client.post("/bookings/hourly-desk", json=_desk_payload(hot_desk, future_date)).status_code == 401


class TestBookingAccess:
    def _book(self, client, user, workspace, day):
        response = client.post("/bookings/hourly-desk", json=_desk_payload(workspace, day), headers=auth_headers(user))
        return response.json()["booking"]["id"]

    def test_list_groups_upcoming(self, client, member, hot_desk, future_date):
        self._book(client, member, hot_desk, future_date)
        response = client.get("/bookings", headers=auth_headers(member))
        assert response.status_code == 200
        body = response.json()
        assert body["summary"]["total"] == 1
        assert body["summary"]["upcoming"] == 1
        assert len(body["upcoming"]) == 1

    def test_detail_includes_status_info(self, client, member, hot_desk, future_date):
        booking_id = self._book(client, member, hot_desk, future_date)
        response = client.get(f"/bookings/{booking_id}", headers=auth_headers(member))
        assert response.status_code == 200
        body = response.json()
        assert body["workspace"]["name"] == hot_desk.name
        assert body["status_info"]["can_cancel"] is True
        assert body["status_info"]["can_check_in"] is False

    def test_other_member_forbidden(self, client, member, nft_member, hot_desk, future_date):
        booking_id = self._book(client, member, hot_desk, future_date)
        assert client.get(f"/bookings/{booking_id}", headers=auth_headers(nft_member)).status_code == 403

    def test_staff_can_view(self, client, member, staff, hot_desk, future_date):
        booking_id = self._book(client, member, hot_desk, future_date)
        assert client.get(f"/bookings/{booking_id}", headers=auth_headers(staff)).status_code == 200

    def test_cancel(self, client, member, hot_desk, future_date, db_session):
        booking_id = self._book(client, member, hot_desk, future_date)
        response = client.post(f"/bookings/{booking_id}/cancel", headers=auth_headers(member))
        assert response.status_code == 200
        assert response.json()["booking"]["status"] == "cancelled"
        assert response.json()["refund_eligible"] is True
        assert db_session.get(Booking, booking_id).status == BookingStatus.cancelled

    def test_check_in_too_early(self, client, member, hot_desk, future_date):
        booking_id = self._book(client, member, hot_desk, future_date)
        response = client.post(f"/bookings/{booking_id}/check-in", headers=auth_headers(member))
        assert response.status_code == 400
        assert "Check-in available in" in response.json()["detail"]

    def test_cost_before_check_in(self, client, member, hot_desk, future_date):
        booking_id = self._book(client, member, hot_desk, future_date)
        response = client.get(f"/bookings/{booking_id}/calculate-cost", headers=auth_headers(member))
        assert response.status_code == 400

    def test_missing_booking(self, client, member):
        assert client.get("/bookings/9999", headers=auth_headers(member)).status_code == 404
