"""Admin analytics: revenue, booking volume and utilisation, user growth."""
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.booking import Booking, BookingStatus, BookingType, PaymentStatus
from app.models.cafe import CafeOrder, OrderStatus
from app.models.membership import MembershipPlan
from app.models.user import User, UserRole, MembershipStatus
from app.models.workspace import Workspace
from app.services.availability import OPEN_HOUR, CLOSE_HOUR
from app.services.time_utils import as_utc

BUSINESS_HOURS_PER_DAY = CLOSE_HOUR - OPEN_HOUR


def _range_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """[start 00:00, end+1 00:00) in UTC."""
    return (
        datetime.combine(start, time.min, tzinfo=timezone.utc),
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc),
    )


def revenue(db: Session, start: date, end: date) -> dict:
    bookings = (
        db.query(Booking)
        .filter(Booking.booking_date >= start, Booking.booking_date <= end)
        .all()
    )
    lo, hi = _range_bounds(start, end)
    orders = (
        db.query(CafeOrder)
        .filter(CafeOrder.created_at >= lo, CafeOrder.created_at < hi, CafeOrder.status != OrderStatus.cancelled)
        .all()
    )

    by_day: dict[date, dict[str, float]] = defaultdict(lambda: {"bookings": 0.0, "cafe": 0.0})
    booking_revenue = refunded = nft_discounts = 0.0
    for b in bookings:
        if b.payment_status == PaymentStatus.paid:
            # Early check-out refunds leave the booking paid
            kept = float(b.total_price) - float(b.refund_amount or 0)
            booking_revenue += kept
            refunded += float(b.refund_amount or 0)
            by_day[b.booking_date]["bookings"] += kept
        elif b.payment_status == PaymentStatus.refunded:
            refunded += float(b.refund_amount or b.total_price)
        if b.nft_discount_applied and b.status != BookingStatus.cancelled:
            nft_discounts += float(b.discount_amount)

    cafe_revenue = 0.0
    for o in orders:
        if o.payment_status == PaymentStatus.paid:
            cafe_revenue += float(o.total_price)
            by_day[as_utc(o.created_at).date()]["cafe"] += float(o.total_price)
        if o.nft_discount_applied:
            nft_discounts += float(o.discount_amount)

    return {
        "start_date": start,
        "end_date": end,
        "booking_revenue": round(booking_revenue, 2),
        "cafe_revenue": round(cafe_revenue, 2),
        "total_revenue": round(booking_revenue + cafe_revenue, 2),
        "refunded": round(refunded, 2),
        "nft_discounts_given": round(nft_discounts, 2),
        "by_day": [
            {"date": d.isoformat(), "bookings": round(v["bookings"], 2), "cafe": round(v["cafe"], 2)}
            for d, v in sorted(by_day.items())
        ],
    }


def booking_stats(db: Session, start: date, end: date) -> dict:
    """Counts by status and type; utilisation is booked hours over open hours in the range."""
    rows = (
        db.query(Booking)
        .filter(Booking.booking_date >= start, Booking.booking_date <= end)
        .all()
    )
    by_status = {s.value: 0 for s in BookingStatus}
    by_type = {t.value: 0 for t in BookingType}
    per_workspace: dict[int, dict] = {}
    for b in rows:
        by_status[b.status.value] += 1
        by_type[b.booking_type.value] += 1
        if b.status == BookingStatus.cancelled:
            continue
        entry = per_workspace.setdefault(b.workspace_id, {"bookings": 0, "booked_hours": 0.0})
        entry["bookings"] += 1
        entry["booked_hours"] += float(b.duration_hours)

    open_hours = ((end - start).days + 1) * BUSINESS_HOURS_PER_DAY
    utilization = []
    for ws in db.query(Workspace).order_by(Workspace.id).all():
        entry = per_workspace.get(ws.id, {"bookings": 0, "booked_hours": 0.0})
        utilization.append({
            "workspace_id": ws.id,
            "workspace_name": ws.name,
            "bookings": entry["bookings"],
            "booked_hours": round(entry["booked_hours"], 2),
            "utilization_percent": round(min(100.0, entry["booked_hours"] / open_hours * 100), 1) if open_hours else 0.0,
        })
    return {
        "start_date": start,
        "end_date": end,
        "total": len(rows),
        "by_status": by_status,
        "by_type": by_type,
        "utilization": utilization,
    }


def user_stats(db: Session, start: date, end: date) -> dict:
    lo, hi = _range_bounds(start, end)
    by_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    plans = dict(
        db.query(MembershipPlan.name, func.count(User.id))
        .join(User, User.membership_plan_id == MembershipPlan.id)
        .filter(User.membership_status == MembershipStatus.active)
        .group_by(MembershipPlan.name)
        .all()
    )
    return {
        "start_date": start,
        "end_date": end,
        "total_users": sum(by_role.values()),
        "new_users": db.query(func.count(User.id)).filter(User.created_at >= lo, User.created_at < hi).scalar(),
        "nft_holders": db.query(func.count(User.id)).filter(User.nft_holder == True).scalar(),
        "active_memberships": db.query(func.count(User.id)).filter(User.membership_status == MembershipStatus.active).scalar(),
        "by_role": {r.value: by_role.get(r, 0) for r in UserRole},
        "memberships_by_plan": plans,
    }
