"""Booking lifecycle: creation per booking type, check-in/out, extension, cancellation, cost estimates.

Functions flush but never commit; routers commit once the whole change succeeded.
"""
import logging
import math
import secrets
import string
from datetime import datetime, timedelta
from types import SimpleNamespace

from sqlalchemy.orm import Session

from app.models.booking import Booking, BookingType, BookingStatus, PaymentStatus, PaymentMethod
from app.models.membership import CreditType
from app.models.user import User
from app.models.workspace import Workspace, ResourceCategory
from app.schemas.booking import BookingStatusInfo, CostEstimate
from app.schemas.pricing import PricingBreakdown, FinalCharge
from app.services import credits as credit_service
from app.services.availability import check_availability, within_business_hours, BUSINESS_OPEN, BUSINESS_CLOSE
from app.services.pricing import (
    calculate_hourly_desk_pricing,
    calculate_meeting_room_pricing,
    calculate_day_pass_pricing,
    calculate_final_charge,
    calculate_duration_hours,
    calculate_actual_duration,
    validate_booking_duration,
    time_to_minutes,
)
from app.services.time_utils import utcnow, as_utc, combine_utc

logger = logging.getLogger(__name__)

CONFIRMATION_CODE_LENGTH = 8
CONFIRMATION_CODE_ALPHABET = string.ascii_uppercase + string.digits
CHECK_IN_EARLY_MINUTES = 15
CHECK_IN_LATE_MINUTES = 60
FREE_CANCELLATION_HOURS = 24

REFUND_POLICY_FULL = "Full refund - cancelled more than 24 hours in advance"
REFUND_POLICY_NONE = "No refund - cancelled less than 24 hours in advance"


class BookingRuleError(Exception):
    """A booking request that breaks a business rule; status_code maps to the HTTP response."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def generate_confirmation_code(db: Session) -> str:
    while True:
        code = "".join(secrets.choice(CONFIRMATION_CODE_ALPHABET) for _ in range(CONFIRMATION_CODE_LENGTH))
        if not db.query(Booking.id).filter(Booking.confirmation_code == code).first():
            return code


def booking_window(booking: Booking) -> tuple[datetime, datetime]:
    """Start and end of the booking as UTC datetimes."""
    start = combine_utc(booking.booking_date, booking.start_time)
    end = combine_utc(booking.booking_date, booking.end_time)
    if end <= start:
        end += timedelta(days=1)
    return start, end


def _get_workspace(db: Session, workspace_id: int, category: ResourceCategory) -> Workspace:
    workspace = db.query(Workspace).filter(Workspace.id == workspace_id).first()
    if not workspace:
        raise BookingRuleError("Workspace not found", 404)
    if workspace.resource_category != category:
        label = "hot desk" if category == ResourceCategory.desk else "meeting room"
        raise BookingRuleError(f"Selected workspace is not a {label}")
    if not workspace.available:
        raise BookingRuleError("Workspace is not available for booking")
    return workspace


def _validate_window(db: Session, workspace: Workspace, data, now: datetime) -> float:
    """Shared checks for timed bookings; returns the duration in hours."""
    start = combine_utc(data.booking_date, data.start_time)
    if start <= now:
        raise BookingRuleError("Booking must be in the future")
    if not within_business_hours(data.start_time, data.end_time):
        raise BookingRuleError(f"Bookings must be between {BUSINESS_OPEN} and {BUSINESS_CLOSE}")
    duration = calculate_duration_hours(data.start_time, data.end_time)
    if duration <= 0:
        raise BookingRuleError("End time must be after start time")
    error = validate_booking_duration(duration, float(workspace.min_duration), float(workspace.max_duration))
    if error:
        raise BookingRuleError(error)
    available, _ = check_availability(db, workspace.id, data.booking_date, data.start_time, data.end_time)
    if not available:
        raise BookingRuleError("Time slot is not available", 409)
    return duration


def _new_booking(db: Session, user: User, workspace: Workspace, booking_type: BookingType, data, duration: float, pricing: PricingBreakdown) -> Booking:
    paid_up_front = pricing.total_price == 0
    booking = Booking(
        user_id=user.id,
        workspace_id=workspace.id,
        booking_type=booking_type,
        booking_date=data.booking_date,
        start_time=data.start_time,
        end_time=data.end_time,
        duration_hours=duration,
        attendees=getattr(data, "attendees", 1),
        base_price=pricing.base_price,
        subtotal=pricing.subtotal,
        discount_amount=pricing.discount_amount,
        nft_discount_applied=pricing.nft_discount_applied,
        credits_used=pricing.credits_used,
        credits_overage_hours=pricing.credits_overage_hours,
        overage_charge=pricing.overage_charge,
        processing_fee=pricing.processing_fee,
        total_price=pricing.total_price,
        payment_method=pricing.payment_method,
        payment_status=PaymentStatus.paid if paid_up_front else PaymentStatus.pending,
        status=BookingStatus.confirmed if paid_up_front else BookingStatus.pending,
        confirmation_code=generate_confirmation_code(db),
        special_requests=data.special_requests,
    )
    db.add(booking)
    db.flush()
    return booking


def create_hourly_desk_booking(db: Session, user: User, data, now: datetime | None = None) -> tuple[Booking, PricingBreakdown]:
    now = now or utcnow()
    workspace = _get_workspace(db, data.workspace_id, ResourceCategory.desk)
    duration = _validate_window(db, workspace, data, now)
    pricing = calculate_hourly_desk_pricing(
        duration,
        user.nft_holder,
        user.membership_plan,
        user.has_active_membership,
    )
    booking = _new_booking(db, user, workspace, BookingType.hourly_desk, data, duration, pricing)
    logger.info("Hourly desk booking %s created for user %s", booking.confirmation_code, user.id)
    return booking, pricing


def create_meeting_room_booking(db: Session, user: User, data, now: datetime | None = None) -> tuple[Booking, PricingBreakdown, float]:
    now = now or utcnow()
    workspace = _get_workspace(db, data.workspace_id, ResourceCategory.meeting_room)
    if not user.has_active_membership:
        raise BookingRuleError("An active membership is required to book meeting rooms", 403)
    if data.attendees > workspace.capacity:
        raise BookingRuleError(f"This room holds at most {workspace.capacity} people")
    duration = _validate_window(db, workspace, data, now)

    available_credits = credit_service.get_available_amount(db, user.id, CreditType.meeting_room)
    pricing = calculate_meeting_room_pricing(float(workspace.base_price_hourly), duration, available_credits, user.nft_holder)
    booking = _new_booking(db, user, workspace, BookingType.meeting_room, data, duration, pricing)
    if pricing.credits_used > 0:
        credit_service.deduct_credits(
            db,
            user.id,
            CreditType.meeting_room,
            pricing.credits_used,
            booking_id=booking.id,
            description=f"Meeting room booking {booking.confirmation_code}",
        )
    remaining = available_credits - pricing.credits_used
    logger.info("Meeting room booking %s created for user %s (credits used %s)", booking.confirmation_code, user.id, pricing.credits_used)
    return booking, pricing, remaining


def create_day_pass_booking(db: Session, user: User, data, now: datetime | None = None) -> tuple[Booking, PricingBreakdown]:
    now = now or utcnow()
    workspace = _get_workspace(db, data.workspace_id, ResourceCategory.desk)
    if data.booking_date < now.date():
        raise BookingRuleError("Booking must be in the future")

    window = SimpleNamespace(
        booking_date=data.booking_date,
        start_time=BUSINESS_OPEN,
        end_time=BUSINESS_CLOSE,
        special_requests=data.special_requests,
    )
    available, _ = check_availability(db, workspace.id, data.booking_date, BUSINESS_OPEN, BUSINESS_CLOSE)
    if not available:
        raise BookingRuleError("Workspace is already booked on this day", 409)
    pricing = calculate_day_pass_pricing(user.nft_holder)
    duration = calculate_duration_hours(BUSINESS_OPEN, BUSINESS_CLOSE)
    booking = _new_booking(db, user, workspace, BookingType.day_pass, window, duration, pricing)
    return booking, pricing


def _other_active_booking(db: Session, booking: Booking) -> Booking | None:
    return (
        db.query(Booking)
        .filter(
            Booking.user_id == booking.user_id,
            Booking.id != booking.id,
            Booking.check_in_time.isnot(None),
            Booking.check_out_time.is_(None),
        )
        .first()
    )


def _check_in_error(booking: Booking, now: datetime) -> str | None:
    if booking.status in (BookingStatus.cancelled, BookingStatus.completed):
        return f"Cannot check in to a {booking.status.value} booking"
    if booking.check_in_time is not None:
        return "Already checked in"
    start, end = booking_window(booking)
    opens = start - timedelta(minutes=CHECK_IN_EARLY_MINUTES)
    if now < opens:
        minutes = math.ceil((opens - now).total_seconds() / 60)
        return f"Check-in available in {minutes} minutes"
    if now > end + timedelta(minutes=CHECK_IN_LATE_MINUTES):
        return "Check-in window has closed for this booking"
    return None


def get_status_info(booking: Booking, now: datetime | None = None) -> BookingStatusInfo:
    now = now or utcnow()
    start, _ = booking_window(booking)
    finished = booking.status in (BookingStatus.cancelled, BookingStatus.completed)
    return BookingStatusInfo(
        is_active=booking.is_active,
        can_check_in=_check_in_error(booking, now) is None,
        can_check_out=booking.is_active,
        can_cancel=not finished and not booking.is_active and start > now,
        can_extend=booking.is_active and booking.status != BookingStatus.cancelled,
    )


def check_in(db: Session, booking: Booking, now: datetime | None = None) -> Booking:
    now = now or utcnow()
    error = _check_in_error(booking, now)
    if error:
        raise BookingRuleError(error)
    if _other_active_booking(db, booking):
        raise BookingRuleError("You already have an active booking. Check out first.", 409)
    booking.check_in_time = now
    booking.status = BookingStatus.confirmed
    db.flush()
    return booking


def check_out(db: Session, booking: Booking, now: datetime | None = None) -> tuple[Booking, FinalCharge | None]:
    """Close an active booking. Hourly desks paid by card are reconciled against actual use."""
    now = now or utcnow()
    if booking.check_in_time is None:
        raise BookingRuleError("Must check in before checking out")
    if booking.check_out_time is not None:
        raise BookingRuleError("Already checked out")
    actual = calculate_actual_duration(as_utc(booking.check_in_time), now)
    booking.check_out_time = now
    booking.actual_duration_hours = actual
    booking.status = BookingStatus.completed

    charge = None
    if booking.booking_type == BookingType.hourly_desk and booking.payment_method == PaymentMethod.card:
        fee = booking.fees_charged
        charge = calculate_final_charge(
            float(booking.duration_hours),
            actual,
            float(booking.total_price) - fee,
            fee,
            booking.nft_discount_applied,
        )
        booking.final_charge = charge.final_charge
        booking.refund_amount = charge.refund_amount
    else:
        booking.final_charge = float(booking.total_price)
        booking.refund_amount = 0.0
    db.flush()
    return booking, charge


def extend_booking(db: Session, user: User, booking: Booking, new_end_time: str) -> tuple[Booking, float, float]:
    """Push the end time of an active booking; returns (booking, additional_hours, additional_charge)."""
    if booking.check_in_time is None:
        raise BookingRuleError("Must check in before extending booking")
    if booking.check_out_time is not None or booking.status == BookingStatus.completed:
        raise BookingRuleError("Cannot extend a completed booking")
    if booking.status == BookingStatus.cancelled:
        raise BookingRuleError("Cannot extend a cancelled booking")
    if time_to_minutes(new_end_time) <= time_to_minutes(booking.end_time):
        raise BookingRuleError("New end time must be after current end time")
    if time_to_minutes(new_end_time) > time_to_minutes(BUSINESS_CLOSE):
        raise BookingRuleError(f"Bookings must end by {BUSINESS_CLOSE}")

    workspace = booking.workspace
    new_duration = calculate_duration_hours(booking.start_time, new_end_time)
    error = validate_booking_duration(new_duration, float(workspace.min_duration), float(workspace.max_duration))
    if error:
        raise BookingRuleError(error)
    available, _ = check_availability(
        db, booking.workspace_id, booking.booking_date, booking.end_time, new_end_time, exclude_booking_id=booking.id
    )
    if not available:
        raise BookingRuleError("Extended time slot is not available", 409)

    additional_hours = calculate_duration_hours(booking.end_time, new_end_time)
    if booking.booking_type == BookingType.meeting_room:
        available_credits = credit_service.get_available_amount(db, user.id, CreditType.meeting_room)
        extra = calculate_meeting_room_pricing(float(workspace.base_price_hourly), additional_hours, available_credits, user.nft_holder)
        if extra.credits_used > 0:
            credit_service.deduct_credits(
                db, user.id, CreditType.meeting_room, extra.credits_used,
                booking_id=booking.id, description=f"Extension of {booking.confirmation_code}",
            )
        booking.credits_used = float(booking.credits_used) + extra.credits_used
        booking.credits_overage_hours = float(booking.credits_overage_hours) + extra.credits_overage_hours
        booking.overage_charge = float(booking.overage_charge) + extra.overage_charge
    else:
        extra = calculate_hourly_desk_pricing(additional_hours, user.nft_holder, user.membership_plan, user.has_active_membership)

    booking.end_time = new_end_time
    booking.duration_hours = new_duration
    booking.subtotal = round(float(booking.subtotal) + extra.subtotal, 2)
    booking.discount_amount = round(float(booking.discount_amount) + extra.discount_amount, 2)
    booking.extension_fees = round(float(booking.extension_fees or 0) + extra.processing_fee, 2)
    booking.total_price = round(float(booking.total_price) + extra.total_price, 2)
    if extra.total_price > 0 and booking.payment_status == PaymentStatus.paid:
        # Extension is billed separately
        booking.payment_status = PaymentStatus.pending
    db.flush()
    return booking, additional_hours, extra.total_price


def cancel_booking(db: Session, booking: Booking, now: datetime | None = None) -> dict:
    now = now or utcnow()
    if booking.status == BookingStatus.cancelled:
        raise BookingRuleError("Booking is already cancelled")
    if booking.status == BookingStatus.completed:
        raise BookingRuleError("Cannot cancel a completed booking")
    if booking.is_active:
        raise BookingRuleError("Cannot cancel an active booking. Please check out instead.")

    start, _ = booking_window(booking)
    refund_eligible = (start - now) > timedelta(hours=FREE_CANCELLATION_HOURS)
    refund_amount = float(booking.total_price) if refund_eligible and booking.payment_status == PaymentStatus.paid else 0.0

    credits_refunded = 0.0
    if float(booking.credits_used) > 0:
        txn = credit_service.refund_credits(
            db,
            booking.user_id,
            CreditType.meeting_room,
            float(booking.credits_used),
            booking_id=booking.id,
            description=f"Cancelled booking {booking.confirmation_code}",
        )
        if txn is not None:
            credits_refunded = float(booking.credits_used)

    booking.status = BookingStatus.cancelled
    db.flush()
    return {
        "refund_eligible": refund_eligible,
        "refund_amount": refund_amount,
        "credits_refunded": credits_refunded,
        "refund_policy": REFUND_POLICY_FULL if refund_eligible else REFUND_POLICY_NONE,
    }


def estimate_cost(booking: Booking, now: datetime | None = None) -> CostEstimate:
    """Running charge for an active booking if the member checked out now."""
    now = now or utcnow()
    if booking.check_in_time is None:
        raise BookingRuleError("Booking has not been checked in")
    if booking.check_out_time is not None:
        raise BookingRuleError("Booking is already checked out")
    elapsed = calculate_actual_duration(as_utc(booking.check_in_time), now)
    booked = float(booking.duration_hours)
    fee = booking.fees_charged
    charge = calculate_final_charge(booked, elapsed, float(booking.total_price) - fee, fee, booking.nft_discount_applied)
    return CostEstimate(
        booking_id=booking.id,
        booked_hours=booked,
        elapsed_hours=elapsed,
        hours_remaining=round(max(0.0, booked - elapsed), 2),
        is_overtime=elapsed > booked,
        current_charge=charge,
    )


def categorize_bookings(bookings: list[Booking], now: datetime | None = None) -> dict[str, list[Booking]]:
    now = now or utcnow()
    groups: dict[str, list[Booking]] = {"upcoming": [], "active": [], "past": [], "cancelled": []}
    for b in bookings:
        if b.status == BookingStatus.cancelled:
            groups["cancelled"].append(b)
        elif b.is_active:
            groups["active"].append(b)
        elif b.status == BookingStatus.completed or booking_window(b)[1] < now:
            groups["past"].append(b)
        else:
            groups["upcoming"].append(b)
    return groups
