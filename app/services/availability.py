"""Workspace availability: overlap checks against pending/confirmed bookings and slot generation."""
from datetime import date

from sqlalchemy.orm import Session

from app.models.booking import Booking, BookingStatus
from app.schemas.workspace import TimeSlot
from app.services.pricing import time_to_minutes, parse_time

BUSINESS_OPEN = "07:00"
BUSINESS_CLOSE = "22:00"
OPEN_HOUR = 7
CLOSE_HOUR = 22

# Only these statuses hold a slot
BLOCKING_STATUSES = (BookingStatus.pending, BookingStatus.confirmed)


def times_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    """Half-open intervals: back-to-back bookings do not overlap."""
    return time_to_minutes(start1) < time_to_minutes(end2) and time_to_minutes(end1) > time_to_minutes(start2)


def _minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def get_day_bookings(
    db: Session,
    workspace_id: int,
    booking_date: date,
    exclude_booking_id: int | None = None,
) -> list[Booking]:
    q = db.query(Booking).filter(
        Booking.workspace_id == workspace_id,
        Booking.booking_date == booking_date,
        Booking.status.in_(BLOCKING_STATUSES),
    )
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)
    return q.order_by(Booking.start_time).all()


def check_availability(
    db: Session,
    workspace_id: int,
    booking_date: date,
    start_time: str,
    end_time: str,
    exclude_booking_id: int | None = None,
) -> tuple[bool, list[Booking]]:
    """(available, conflicting bookings) for the requested window."""
    conflicts = [
        b for b in get_day_bookings(db, workspace_id, booking_date, exclude_booking_id)
        if times_overlap(start_time, end_time, b.start_time, b.end_time)
    ]
    return not conflicts, conflicts


def build_slots(bookings: list[Booking], min_duration_hours: float = 1.0) -> list[TimeSlot]:
    """Walk the business day: gaps long enough to book are available, booked ranges are not."""
    min_minutes = int(round(min_duration_hours * 60))
    cursor = time_to_minutes(BUSINESS_OPEN)
    close = time_to_minutes(BUSINESS_CLOSE)
    slots: list[TimeSlot] = []
    for b in sorted(bookings, key=lambda x: time_to_minutes(x.start_time)):
        start = time_to_minutes(b.start_time)
        end = time_to_minutes(b.end_time)
        if start - cursor >= min_minutes:
            slots.append(TimeSlot(start_time=_minutes_to_time(cursor), end_time=_minutes_to_time(start), available=True))
        slots.append(TimeSlot(start_time=_minutes_to_time(start), end_time=_minutes_to_time(end), available=False))
        cursor = max(cursor, end)
    if close - cursor >= min_minutes:
        slots.append(TimeSlot(start_time=_minutes_to_time(cursor), end_time=_minutes_to_time(close), available=True))
    return slots


def get_available_slots(
    db: Session,
    workspace_id: int,
    booking_date: date,
    min_duration_hours: float = 1.0,
) -> list[TimeSlot]:
    return build_slots(get_day_bookings(db, workspace_id, booking_date), min_duration_hours)


def validate_availability_query(
    booking_date: date,
    start_time: str | None,
    end_time: str | None,
    today: date | None = None,
) -> str | None:
    """Error message for an invalid availability window, else None."""
    today = today or date.today()
    if booking_date < today:
        return "Date must be today or in the future"
    if bool(start_time) != bool(end_time):
        return "Both start_time and end_time are required when filtering by time"
    if not start_time:
        return None
    try:
        start_hour, _ = parse_time(start_time)
        end_minutes = time_to_minutes(end_time)
        start_minutes = time_to_minutes(start_time)
    except ValueError:
        return "Times must be in HH:MM format"
    if start_hour < OPEN_HOUR or start_hour >= CLOSE_HOUR:
        return "Start time must be between 07:00 and 22:00"
    if end_minutes > time_to_minutes(BUSINESS_CLOSE):
        return "End time must be 22:00 or earlier"
    if end_minutes <= start_minutes:
        return "End time must be after start time"
    return None


def within_business_hours(start_time: str, end_time: str) -> bool:
    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time)
    return time_to_minutes(BUSINESS_OPEN) <= start < end <= time_to_minutes(BUSINESS_CLOSE)
