"""Tests for overlap checks and slot generation."""

from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from app.models.booking import Booking, BookingType, BookingStatus
from app.services.availability import (
    times_overlap,
    build_slots,
    check_availability,
    validate_availability_query,
    within_business_hours,
)

pytestmark = pytest.mark.unit


def _booking(db, workspace, user, day, start, end, status=BookingStatus.confirmed, code="AAAA0001"):
    b = Booking(
        user_id=user.id,
        workspace_id=workspace.id,
        booking_type=BookingType.hourly_desk,
        booking_date=day,
        start_time=start,
        end_time=end,
        duration_hours=1,
        status=status,
        confirmation_code=code,
    )
    db.add(b)
    db.commit()
    return b


class TestOverlap:
    def test_overlapping(self):
        assert times_overlap("09:00", "11:00", "10:00", "12:00")

    def test_back_to_back_is_free(self):
        assert not times_overlap("09:00", "10:00", "10:00", "11:00")

    def test_contained(self):
        assert times_overlap("09:00", "17:00", "12:00", "13:00")


class TestSlots:
    def test_empty_day_is_one_open_slot(self):
        slots = build_slots([])
        assert len(slots) == 1
        assert (slots[0].start_time, slots[0].end_time, slots[0].available) == ("07:00", "22:00", True)

    def test_booked_range_splits_day(self):
        slots = build_slots([SimpleNamespace(start_time="10:00", end_time="12:00")])
        assert [(s.start_time, s.end_time, s.available) for s in slots] == [
            ("07:00", "10:00", True),
            ("10:00", "12:00", False),
            ("12:00", "22:00", True),
        ]

    def test_short_gaps_are_dropped(self):
        slots = build_slots(
            [
                SimpleNamespace(start_time="07:30", end_time="09:00"),
                SimpleNamespace(start_time="09:30", end_time="21:30"),
            ],
            min_duration_hours=1,
        )
        assert all(not s.available for s in slots)


class TestCheckAvailability:
    def test_conflict_detected(self, db_session, hot_desk, member, future_date):
        existing = _booking(db_session, hot_desk, member, future_date, "09:00", "11:00")
        available, conflicts = check_availability(db_session, hot_desk.id, future_date, "10:00", "12:00")
        assert not available
        assert [c.id for c in conflicts] == [existing.id]

    def test_cancelled_bookings_do_not_block(self, db_session, hot_desk, member, future_date):
        _booking(db_session, hot_desk, member, future_date, "09:00", "11:00", status=BookingStatus.cancelled)
        available, _ = check_availability(db_session, hot_desk.id, future_date, "09:00", "11:00")
        assert available

    def test_excluded_booking_ignored(self, db_session, hot_desk, member, future_date):
        existing = _booking(db_session, hot_desk, member, future_date, "09:00", "11:00")
        available, _ = check_availability(
            db_session, hot_desk.id, future_date, "09:00", "12:00", exclude_booking_id=existing.id
        )
        assert available


class TestQueryValidation:
    def test_past_date(self):
        today = date(2026, 5, 10)
        assert validate_availability_query(today - timedelta(days=1), None, None, today=today) == (
            "Date must be today or in the future"
        )

    def test_both_times_required(self):
        today = date(2026, 5, 10)
        assert "Both start_time and end_time" in validate_availability_query(today, "09:00", None, today=today)

    def test_outside_business_hours(self):
        today = date(2026, 5, 10)
        assert validate_availability_query(today, "06:00", "08:00", today=today) == (
            "Start time must be between 07:00 and 22:00"
        )
        assert validate_availability_query(today, "21:00", "23:00", today=today) == "End time must be 22:00 or earlier"

    def test_valid_window(self):
        today = date(2026, 5, 10)
        assert validate_availability_query(today, "09:00", "10:30", today=today) is None

    def test_within_business_hours(self):
        assert within_business_hours("07:00", "22:00")
        assert not within_business_hours("06:30", "08:00")
