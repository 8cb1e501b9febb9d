"""Stripe webhook event handlers. Each returns a short result dict; the router commits.

Handlers never send email or push notifications themselves. They append zero-argument
callables to `outbox`, which the caller runs only once the transaction has committed.
"""
import logging
from functools import partial
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from app.models.booking import Booking, BookingStatus, PaymentStatus
from app.models.cafe import CafeOrder
from app.models.content import EventRsvp
from app.models.membership import MembershipPlan
from app.models.user import User, MembershipStatus
from app.services import credits as credit_service
from app.services import realtime
from app.services.notifications import (
    send_payment_receipt,
    send_payment_failed,
    send_membership_welcome,
    send_credit_allocation,
)
from app.services.time_utils import utcnow

logger = logging.getLogger(__name__)

RENEWAL_WINDOW = timedelta(hours=1)


def _ts(value) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _metadata_int(obj, key: str) -> int | None:
    raw = (obj.get("metadata") or {}).get(key)
    try:
        return int(raw) if raw not in (None, "") else None
    except (TypeError, ValueError):
        return None


def handle_payment_succeeded(db: Session, intent, outbox: list) -> dict:
    booking_id = _metadata_int(intent, "booking_id")
    order_id = _metadata_int(intent, "order_id")
    rsvp_id = _metadata_int(intent, "rsvp_id")
    amount = (intent.get("amount_received") or intent.get("amount") or 0) / 100

    if booking_id is not None:
        booking = db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            return {"handled": False, "reason": f"booking {booking_id} not found"}
        booking.status = BookingStatus.confirmed
        booking.payment_status = PaymentStatus.paid
        booking.payment_intent_id = intent["id"]
        db.flush()
        user = booking.user
        outbox.append(partial(
            send_payment_receipt,
            user.email, user.full_name, f"{booking.workspace.name} booking {booking.confirmation_code}", amount, intent["id"],
        ))
        outbox.append(partial(realtime.publish_booking_event, realtime.BOOKING_CONFIRMED, booking))
        return {"handled": True, "booking_id": booking.id}

    if order_id is not None:
        order = db.query(CafeOrder).filter(CafeOrder.id == order_id).first()
        if not order:
            return {"handled": False, "reason": f"order {order_id} not found"}
        order.payment_status = PaymentStatus.paid
        order.payment_intent_id = intent["id"]
        db.flush()
        outbox.append(partial(
            send_payment_receipt, order.user.email, order.user.full_name, f"Cafe order #{order.id}", amount, intent["id"],
        ))
        return {"handled": True, "order_id": order.id}

    if rsvp_id is not None:
        rsvp = db.query(EventRsvp).filter(EventRsvp.id == rsvp_id).first()
        if not rsvp:
            return {"handled": False, "reason": f"rsvp {rsvp_id} not found"}
        rsvp.payment_status = PaymentStatus.paid
        db.flush()
        return {"handled": True, "rsvp_id": rsvp.id}

    return {"handled": True, "reason": "no booking, order or rsvp in metadata"}


def handle_payment_failed(db: Session, intent, outbox: list) -> dict:
    booking_id = _metadata_int(intent, "booking_id")
    if booking_id is None:
        return {"handled": True, "reason": "no booking in metadata"}
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        return {"handled": False, "reason": f"booking {booking_id} not found"}
    booking.payment_status = PaymentStatus.pending
    db.flush()
    outbox.append(partial(
        send_payment_failed,
        booking.user.email,
        booking.user.full_name,
        f"{booking.workspace.name} booking {booking.confirmation_code}",
        (intent.get("amount") or 0) / 100,
    ))
    outbox.append(partial(
        realtime.send_user_notification, booking.user_id, "Payment failed", "Please update your payment method.", "error",
    ))
    return {"handled": True, "booking_id": booking.id}


def _allocate_and_notify(
    db: Session, user: User, plan: MembershipPlan, start: datetime, end: datetime, outbox: list
) -> None:
    credit_service.allocate_credits(db, user, plan, start, end)
    outbox.append(partial(
        send_credit_allocation,
        user.email,
        user.full_name,
        plan.name,
        plan.meeting_room_credits_hours,
        plan.printing_credits,
        plan.guest_passes,
        end.date(),
    ))


def handle_subscription_created(db: Session, subscription, outbox: list) -> dict:
    user_id = _metadata_int(subscription, "user_id")
    plan_id = _metadata_int(subscription, "membership_plan_id")
    if user_id is None or plan_id is None:
        return {"handled": False, "reason": "user_id and membership_plan_id metadata required"}
    user = db.query(User).filter(User.id == user_id).first()
    plan = db.query(MembershipPlan).filter(MembershipPlan.id == plan_id).first()
    if not user or not plan:
        return {"handled": False, "reason": "user or plan not found"}

    start = _ts(subscription.get("current_period_start")) or utcnow()
    end = _ts(subscription.get("current_period_end")) or start + timedelta(days=30)
    user.membership_plan_id = plan.id
    user.membership_status = MembershipStatus.active
    user.membership_start_date = start
    user.membership_end_date = end
    user.stripe_subscription_id = subscription["id"]
    db.flush()
    _allocate_and_notify(db, user, plan, start, end, outbox)
    price = plan.nft_holder_price if user.nft_holder else plan.price
    outbox.append(partial(send_membership_welcome, user.email, user.full_name, plan.name, float(price)))
    return {"handled": True, "user_id": user.id, "plan_id": plan.id}


def handle_subscription_updated(db: Session, subscription, outbox: list, now: datetime | None = None) -> dict:
    now = now or utcnow()
    user = db.query(User).filter(User.stripe_subscription_id == subscription["id"]).first()
    if not user:
        return {"handled": False, "reason": "no user for subscription"}

    stripe_status = subscription.get("status")
    if stripe_status == "canceled" or subscription.get("cancel_at_period_end"):
        user.membership_status = MembershipStatus.cancelled
    elif stripe_status == "paused":
        user.membership_status = MembershipStatus.paused
    else:
        user.membership_status = MembershipStatus.active

    plan_id = _metadata_int(subscription, "membership_plan_id")
    if plan_id is not None:
        user.membership_plan_id = plan_id
    start = _ts(subscription.get("current_period_start"))
    end = _ts(subscription.get("current_period_end"))
    if end:
        user.membership_end_date = end
    db.flush()

    renewed = False
    if start and end and now - start <= RENEWAL_WINDOW and user.membership_status == MembershipStatus.active:
        plan = db.query(MembershipPlan).filter(MembershipPlan.id == user.membership_plan_id).first()
        if plan:
            _allocate_and_notify(db, user, plan, start, end, outbox)
            renewed = True
    return {"handled": True, "user_id": user.id, "status": user.membership_status.value, "renewed": renewed}


def handle_subscription_deleted(db: Session, subscription, outbox: list) -> dict:
    user = db.query(User).filter(User.stripe_subscription_id == subscription["id"]).first()
    if not user:
        return {"handled": False, "reason": "no user for subscription"}
    user.membership_status = MembershipStatus.cancelled
    expired = credit_service.expire_credits(db, user_id=user.id)
    db.flush()
    return {"handled": True, "user_id": user.id, "credits_expired": expired}


HANDLERS = {
    "payment_intent.succeeded": handle_payment_succeeded,
    "payment_intent.payment_failed": handle_payment_failed,
    "customer.subscription.created": handle_subscription_created,
    "customer.subscription.updated": handle_subscription_updated,
    "customer.subscription.deleted": handle_subscription_deleted,
}


def dispatch_event(db: Session, event, outbox: list) -> dict:
    handler = HANDLERS.get(event["type"])
    if handler is None:
        logger.info("Unhandled Stripe event type %s", event["type"])
        return {"handled": False, "reason": "unhandled event type"}
    result = handler(db, event["data"]["object"], outbox)
    logger.info("Stripe event %s -> %s", event["type"], result)
    return result
