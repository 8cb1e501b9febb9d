"""Booking payments: Stripe payment intents and refunds."""
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.dependencies import get_current_user, is_staff_or_admin, call_stripe
from app.models.booking import Booking, BookingStatus, PaymentStatus
from app.models.user import User, UserRole
from app.schemas.payment import CreatePaymentIntentRequest, PaymentIntentResponse, RefundRequest, RefundResponse
from app.services import payments
from app.services.audit_log import create_log, ACTION_REFUND, RESOURCE_BOOKING
from app.services.notifications import send_payment_receipt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


def _require_stripe() -> None:
    if not payments.stripe_configured():
        raise HTTPException(status_code=503, detail="Payments are not configured. Set STRIPE_SECRET_KEY in .env.")


@router.post("/create-intent", response_model=PaymentIntentResponse)
def create_intent(
    data: CreatePaymentIntentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _require_stripe()
    booking = db.query(Booking).filter(Booking.id == data.booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    if booking.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="You do not have access to this booking")
    if booking.payment_status == PaymentStatus.paid:
        raise HTTPException(status_code=400, detail="Booking is already paid")
    if booking.status == BookingStatus.cancelled:
        raise HTTPException(status_code=400, detail="Cannot pay for a cancelled booking")
    if float(booking.total_price) <= 0:
        raise HTTPException(status_code=400, detail="Booking has nothing to pay")

    customer = call_stripe(payments.get_or_create_customer, current_user)
    amount_cents = payments.dollars_to_cents(float(booking.total_price))
    intent = call_stripe(
        payments.create_payment_intent,
        amount_cents,
        customer.id,
        {
            "booking_id": booking.id,
            "user_id": current_user.id,
            "booking_type": booking.booking_type.value,
            "confirmation_code": booking.confirmation_code,
        },
        f"{booking.workspace.name} booking {booking.confirmation_code}",
    )
    booking.payment_intent_id = intent["id"]
    db.commit()
    return PaymentIntentResponse(
        client_secret=intent["client_secret"],
        payment_intent_id=intent["id"],
        amount=payments.cents_to_dollars(amount_cents),
        currency=get_settings().stripe_currency,
    )


@router.post("/refund", response_model=RefundResponse)
def refund(
    data: RefundRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _require_stripe()
    booking = db.query(Booking).filter(Booking.id == data.booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    if booking.user_id != current_user.id and not is_staff_or_admin(current_user):
        raise HTTPException(status_code=403, detail="You do not have access to this booking")
    if booking.payment_status != PaymentStatus.paid or not booking.payment_intent_id:
        raise HTTPException(status_code=400, detail="Booking has no completed payment to refund")
    if current_user.role != UserRole.admin and booking.status != BookingStatus.cancelled:
        raise HTTPException(status_code=400, detail="Cancel the booking before requesting a refund")

    amount = data.amount if data.amount is not None else float(booking.total_price)
    if amount > float(booking.total_price):
        raise HTTPException(status_code=400, detail="Refund amount exceeds the amount paid")
    stripe_refund = call_stripe(
        payments.create_refund,
        booking.payment_intent_id,
        payments.dollars_to_cents(amount),
    )
    booking.payment_status = PaymentStatus.refunded
    booking.refund_amount = amount
    create_log(
        db, ACTION_REFUND, RESOURCE_BOOKING, "Booking refunded",
        f"Refund of ${amount:.2f} for booking {booking.confirmation_code}",
        resource_id=booking.id, actor=current_user, request=request,
        meta={"refund_id": stripe_refund["id"], "amount": amount, "reason": data.reason},
    )
    db.commit()
    db.refresh(booking)

    owner = booking.user
    if not send_payment_receipt(
        owner.email, owner.full_name, f"Refund for booking {booking.confirmation_code}", amount, stripe_refund["id"], refunded=True
    ):
        logger.warning("Refund receipt not sent for booking %s", booking.id)
    return RefundResponse(
        refund_id=stripe_refund["id"],
        booking_id=booking.id,
        amount=amount,
        status=stripe_refund.get("status") or "pending",
        payment_status=booking.payment_status,
    )
