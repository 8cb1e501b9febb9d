"""Pusher channels and events for live booking, order and availability updates.

Triggers never raise: a realtime hiccup must not fail the request that caused it.
"""
import logging
from functools import lru_cache

import pusher

from app.config import get_settings
from app.services.time_utils import utcnow

logger = logging.getLogger(__name__)

# Channels
CHANNEL_WORKSPACE_AVAILABILITY = "workspace-availability"
CHANNEL_ADMIN_DASHBOARD = "presence-admin-dashboard"
CHANNEL_STAFF_ORDERS = "presence-staff-orders"

# Events
BOOKING_CREATED = "booking:created"
BOOKING_CONFIRMED = "booking:confirmed"
BOOKING_CANCELLED = "booking:cancelled"
BOOKING_CHECKED_IN = "booking:checked-in"
BOOKING_CHECKED_OUT = "booking:checked-out"
ORDER_CREATED = "order:created"
ORDER_STATUS_CHANGED = "order:status-changed"
ORDER_READY = "order:ready"
ORDER_COMPLETED = "order:completed"
ORDER_CANCELLED = "order:cancelled"
AVAILABILITY_UPDATED = "availability:updated"
SEAT_OCCUPIED = "seat:occupied"
SEAT_AVAILABLE = "seat:available"
NOTIFICATION = "notification"


def user_channel(user_id: int) -> str:
    return f"private-user-{user_id}"


def booking_channel(booking_id: int) -> str:
    return f"private-booking-{booking_id}"


def order_channel(order_id: int) -> str:
    return f"private-order-{order_id}"


def pusher_configured() -> bool:
    s = get_settings()
    return bool(s.pusher_app_id and s.pusher_key and s.pusher_secret)


@lru_cache
def get_pusher_client() -> pusher.Pusher:
    s = get_settings()
    return pusher.Pusher(
        app_id=s.pusher_app_id,
        key=s.pusher_key,
        secret=s.pusher_secret,
        cluster=s.pusher_cluster,
        ssl=True,
    )


def trigger(channels: str | list[str], event: str, data: dict) -> dict:
    """Publish one event. Returns {"success": bool, "error": str | None}."""
    if not pusher_configured():
        return {"success": False, "error": "Pusher not configured"}
    payload = {**data, "timestamp": utcnow().isoformat()}
    try:
        get_pusher_client().trigger(channels, event, payload)
    except Exception as e:  # pusher raises its own and requests' exceptions
        logger.warning("Pusher trigger failed event=%s channels=%s: %s", event, channels, e)
        return {"success": False, "error": str(e)}
    return {"success": True, "error": None}


def authenticate_channel(channel: str, socket_id: str, user_id: int, user_info: dict | None = None) -> dict:
    """Signature for a private or presence channel subscription."""
    client = get_pusher_client()
    if channel.startswith("presence-"):
        return client.authenticate(
            channel=channel,
            socket_id=socket_id,
            custom_data={"user_id": str(user_id), "user_info": user_info or {}},
        )
    return client.authenticate(channel=channel, socket_id=socket_id)


def can_subscribe(channel: str, user_id: int, role: str) -> bool:
    """Users may join their own private channels; staff/admin presence channels are role gated."""
    if role == "admin":
        return True
    if channel == CHANNEL_STAFF_ORDERS:
        return role == "staff"
    if channel == CHANNEL_ADMIN_DASHBOARD:
        return False
    return channel == user_channel(user_id)


# Booking events

def _booking_data(booking) -> dict:
    return {
        "booking_id": booking.id,
        "user_id": booking.user_id,
        "workspace_id": booking.workspace_id,
        "booking_date": booking.booking_date.isoformat(),
        "start_time": booking.start_time,
        "end_time": booking.end_time,
        "status": booking.status.value,
        "confirmation_code": booking.confirmation_code,
    }


def notify_availability_changed(booking) -> dict:
    return trigger(
        CHANNEL_WORKSPACE_AVAILABILITY,
        AVAILABILITY_UPDATED,
        {
            "workspace_id": booking.workspace_id,
            "booking_date": booking.booking_date.isoformat(),
            "start_time": booking.start_time,
            "end_time": booking.end_time,
        },
    )


def publish_booking_event(event: str, booking) -> dict:
    """Fan one booking change out to the member, the booking channel and the admin dashboard."""
    data = _booking_data(booking)
    result = trigger(
        [user_channel(booking.user_id), booking_channel(booking.id), CHANNEL_ADMIN_DASHBOARD],
        event,
        data,
    )
    if event in (BOOKING_CREATED, BOOKING_CANCELLED):
        notify_availability_changed(booking)
    elif event == BOOKING_CHECKED_IN:
        trigger(CHANNEL_WORKSPACE_AVAILABILITY, SEAT_OCCUPIED, {"workspace_id": booking.workspace_id})
    elif event == BOOKING_CHECKED_OUT:
        trigger(CHANNEL_WORKSPACE_AVAILABILITY, SEAT_AVAILABLE, {"workspace_id": booking.workspace_id})
    return result


# Order events

_ORDER_STATUS_EVENTS = {
    "ready": ORDER_READY,
    "completed": ORDER_COMPLETED,
    "cancelled": ORDER_CANCELLED,
}


def publish_order_created(order) -> dict:
    data = {"order_id": order.id, "user_id": order.user_id, "status": order.status.value, "items": order.items}
    return trigger([user_channel(order.user_id), CHANNEL_STAFF_ORDERS, CHANNEL_ADMIN_DASHBOARD], ORDER_CREATED, data)


def publish_order_status(order, previous_status: str) -> dict:
    data = {
        "order_id": order.id,
        "user_id": order.user_id,
        "status": order.status.value,
        "previous_status": previous_status,
    }
    channels = [order_channel(order.id), user_channel(order.user_id), CHANNEL_STAFF_ORDERS]
    result = trigger(channels, ORDER_STATUS_CHANGED, data)
    specific = _ORDER_STATUS_EVENTS.get(order.status.value)
    if specific:
        trigger([order_channel(order.id), user_channel(order.user_id)], specific, data)
    return result


def send_user_notification(user_id: int, title: str, message: str, level: str = "info") -> dict:
    return trigger(user_channel(user_id), NOTIFICATION, {"title": title, "message": message, "type": level})
