"""UTC helpers. Some drivers (SQLite) hand back naive datetimes for timezone-aware columns."""
from datetime import date, datetime, time, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def combine_utc(day: date, clock: str) -> datetime:
    """Booking date + 'HH:MM' as an aware UTC datetime. '24:00' is the following midnight."""
    hour, minute = (int(p) for p in clock.split(":")[:2])
    if hour == 24:
        return datetime.combine(day, time(0, 0), tzinfo=timezone.utc) + timedelta(days=1)
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)
