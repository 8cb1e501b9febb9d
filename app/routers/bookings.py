"""Bookings: hourly desks, meeting rooms and day passes, plus check-in/out, extension and cancellation."""
import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, is_staff_or_admin
from app.models.booking import Booking, BookingType, BookingStatus
from app.models.user import User
from app.schemas.booking import (
    HourlyDeskBookingCreate,
    MeetingRoomBookingCreate,
    DayPassBookingCreate,
    BookingExtend,
    BookingResponse,
    BookingDetail,
    BookingCreated,
    BookingSummary,
    BookingListResponse,
    CheckInResponse,
    CheckOutResponse,
    ExtendResponse,
    CancelResponse,
    CostEstimate,
)
from app.schemas.pricing import PricingBreakdown
from app.services import bookings as booking_service
from app.services import realtime
from app.services.bookings import BookingRuleError
from app.services.credits import InsufficientCreditsError
from app.services.notifications import send_booking_confirmation
from app.services.pricing import get_pricing_summary
from app.routers.workspaces import workspace_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _rule_error(e: BookingRuleError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


def _get_owned_booking(db: Session, booking_id: int, user: User, allow_staff: bool = False) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    if booking.user_id != user.id and not (allow_staff and is_staff_or_admin(user)):
        raise HTTPException(status_code=403, detail="You do not have access to this booking")
    return booking


def _confirm_if_settled(booking: Booking, user: User) -> None:
    """Bookings that need no payment are confirmed on creation; email the member."""
    realtime.publish_booking_event(realtime.BOOKING_CREATED, booking)
    if booking.status != BookingStatus.confirmed:
        return
    realtime.publish_booking_event(realtime.BOOKING_CONFIRMED, booking)
    sent = send_booking_confirmation(
        user.email,
        user.full_name,
        booking.workspace.name,
        booking.booking_date,
        booking.start_time,
        booking.end_time,
        booking.confirmation_code,
        float(booking.total_price),
        booking.nft_discount_applied,
    )
    if not sent:
        logger.warning("Booking confirmation email not sent for %s", booking.confirmation_code)


def _created(booking: Booking, pricing: PricingBreakdown, credits_remaining: float | None = None) -> BookingCreated:
    return BookingCreated(
        booking=BookingResponse.model_validate(booking),
        pricing=pricing,
        pricing_summary=get_pricing_summary(pricing),
        requires_payment=pricing.total_price > 0,
        credits_remaining=credits_remaining,
    )


@router.get("", response_model=BookingListResponse)
def list_my_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    status: BookingStatus | None = None,
    booking_type: BookingType | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
):
    q = db.query(Booking).filter(Booking.user_id == current_user.id)
    if status:
        q = q.filter(Booking.status == status)
    if booking_type:
        q = q.filter(Booking.booking_type == booking_type)
    if start_date:
        q = q.filter(Booking.booking_date >= start_date)
    if end_date:
        q = q.filter(Booking.booking_date <= end_date)
    bookings = q.order_by(Booking.booking_date.desc(), Booking.start_time.desc()).all()
    groups = booking_service.categorize_bookings(bookings)
    return BookingListResponse(
        bookings=bookings,
        summary=BookingSummary(total=len(bookings), **{k: len(v) for k, v in groups.items()}),
        **groups,
    )


@router.post("/hourly-desk", response_model=BookingCreated, status_code=201)
def create_hourly_desk(
    data: HourlyDeskBookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        booking, pricing = booking_service.create_hourly_desk_booking(db, current_user, data)
    except BookingRuleError as e:
        db.rollback()
        raise _rule_error(e)
    db.commit()
    db.refresh(booking)
    _confirm_if_settled(booking, current_user)
    return _created(booking, pricing)


@router.post("/meeting-room", response_model=BookingCreated, status_code=201)
def create_meeting_room(
    data: MeetingRoomBookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        booking, pricing, remaining = booking_service.create_meeting_room_booking(db, current_user, data)
    except BookingRuleError as e:
        db.rollback()
        raise _rule_error(e)
    except InsufficientCreditsError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(booking)
    _confirm_if_settled(booking, current_user)
    return _created(booking, pricing, credits_remaining=remaining)


@router.post("/day-pass", response_model=BookingCreated, status_code=201)
def create_day_pass(
    data: DayPassBookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        booking, pricing = booking_service.create_day_pass_booking(db, current_user, data)
    except BookingRuleError as e:
        db.rollback()
        raise _rule_error(e)
    db.commit()
    db.refresh(booking)
    _confirm_if_settled(booking, current_user)
    return _created(booking, pricing)


@router.get("/{booking_id}", response_model=BookingDetail)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = _get_owned_booking(db, booking_id, current_user, allow_staff=True)
    return BookingDetail(
        **BookingResponse.model_validate(booking).model_dump(),
        workspace=workspace_response(booking.workspace) if booking.workspace else None,
        status_info=booking_service.get_status_info(booking),
    )


@router.post("/{booking_id}/check-in", response_model=CheckInResponse)
def check_in(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = _get_owned_booking(db, booking_id, current_user)
    try:
        booking_service.check_in(db, booking)
    except BookingRuleError as e:
        db.rollback()
        raise _rule_error(e)
    db.commit()
    db.refresh(booking)
    realtime.publish_booking_event(realtime.BOOKING_CHECKED_IN, booking)
    return CheckInResponse(booking=booking, message="Checked in successfully")


@router.post("/{booking_id}/check-out", response_model=CheckOutResponse)
def check_out(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = _get_owned_booking(db, booking_id, current_user)
    try:
        _, charge = booking_service.check_out(db, booking)
    except BookingRuleError as e:
        db.rollback()
        raise _rule_error(e)
    db.commit()
    db.refresh(booking)
    realtime.publish_booking_event(realtime.BOOKING_CHECKED_OUT, booking)
    message = "Checked out successfully"
    if charge and charge.refund_amount > 0:
        message = f"Checked out successfully. ${charge.refund_amount:.2f} will be refunded for unused time."
    elif charge and charge.final_charge > float(booking.total_price):
        message = f"Checked out successfully. Overtime was charged; final charge ${charge.final_charge:.2f}."
    return CheckOutResponse(booking=booking, charge=charge, message=message)


@router.post("/{booking_id}/extend", response_model=ExtendResponse)
def extend(
    booking_id: int,
    data: BookingExtend,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = _get_owned_booking(db, booking_id, current_user)
    try:
        _, hours, charge = booking_service.extend_booking(db, current_user, booking, data.new_end_time)
    except BookingRuleError as e:
        db.rollback()
        raise _rule_error(e)
    except InsufficientCreditsError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(booking)
    realtime.notify_availability_changed(booking)
    return ExtendResponse(
        booking=booking,
        additional_hours=hours,
        additional_charge=charge,
        message=f"Booking extended until {booking.end_time}",
    )


@router.post("/{booking_id}/cancel", response_model=CancelResponse)
def cancel(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = _get_owned_booking(db, booking_id, current_user)
    try:
        result = booking_service.cancel_booking(db, booking)
    except BookingRuleError as e:
        db.rollback()
        raise _rule_error(e)
    db.commit()
    db.refresh(booking)
    realtime.publish_booking_event(realtime.BOOKING_CANCELLED, booking)
    return CancelResponse(booking=booking, **result)


@router.get("/{booking_id}/calculate-cost", response_model=CostEstimate)
def calculate_cost(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = _get_owned_booking(db, booking_id, current_user)
    try:
        return booking_service.estimate_cost(booking)
    except BookingRuleError as e:
        raise _rule_error(e)
