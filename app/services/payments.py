"""Stripe glue: customers, payment intents, subscriptions, refunds, webhook verification."""
import logging

import stripe

from app.config import get_settings
from app.models.user import User

logger = logging.getLogger(__name__)

CARD_FEE_PERCENT = 0.029
CARD_FEE_FIXED_CENTS = 30
REFUND_REASON_DEFAULT = "requested_by_customer"


class PaymentsNotConfigured(Exception):
    pass


def stripe_configured() -> bool:
    return bool(get_settings().stripe_secret_key)


def _client():
    s = get_settings()
    if not s.stripe_secret_key:
        raise PaymentsNotConfigured("Payments are not configured. Set STRIPE_SECRET_KEY in .env.")
    stripe.api_key = s.stripe_secret_key
    return stripe


def dollars_to_cents(amount: float) -> int:
    return int(round(amount * 100))


def cents_to_dollars(cents: int) -> float:
    return round(cents / 100, 2)


def card_processing_fee_cents(amount_cents: int) -> int:
    """Gateway surcharge: 2.9% + 30c."""
    return int(round(amount_cents * CARD_FEE_PERCENT)) + CARD_FEE_FIXED_CENTS


def get_or_create_customer(user: User):
    """Stripe customer for the user; stores the id on the user row (caller commits)."""
    client = _client()
    if user.stripe_customer_id:
        return client.Customer.retrieve(user.stripe_customer_id)
    customer = client.Customer.create(
        email=user.email,
        name=user.full_name or user.email,
        metadata={"user_id": str(user.id)},
    )
    user.stripe_customer_id = customer.id
    return customer


def create_payment_intent(amount_cents: int, customer_id: str | None, metadata: dict, description: str | None = None):
    client = _client()
    params = {
        "amount": amount_cents,
        "currency": get_settings().stripe_currency,
        "metadata": {k: str(v) for k, v in metadata.items()},
        "automatic_payment_methods": {"enabled": True},
    }
    if customer_id:
        params["customer"] = customer_id
    if description:
        params["description"] = description
    return client.PaymentIntent.create(**params)


def create_subscription(customer_id: str, price_id: str, metadata: dict):
    client = _client()
    return client.Subscription.create(
        customer=customer_id,
        items=[{"price": price_id}],
        payment_behavior="default_incomplete",
        payment_settings={"save_default_payment_method": "on_subscription"},
        expand=["latest_invoice.payment_intent"],
        metadata={k: str(v) for k, v in metadata.items()},
    )


def get_subscription(subscription_id: str):
    return _client().Subscription.retrieve(subscription_id)


def update_subscription_plan(subscription_id: str, new_price_id: str, metadata: dict):
    client = _client()
    subscription = client.Subscription.retrieve(subscription_id)
    item_id = subscription["items"]["data"][0]["id"]
    return client.Subscription.modify(
        subscription_id,
        items=[{"id": item_id, "price": new_price_id}],
        proration_behavior="create_prorations",
        metadata={k: str(v) for k, v in metadata.items()},
    )


def cancel_subscription(subscription_id: str, immediately: bool = False):
    client = _client()
    if immediately:
        return client.Subscription.cancel(subscription_id)
    return client.Subscription.modify(subscription_id, cancel_at_period_end=True)


def set_cancel_at_period_end(subscription_id: str, cancel: bool):
    return _client().Subscription.modify(subscription_id, cancel_at_period_end=cancel)


def create_refund(payment_intent_id: str, amount_cents: int | None = None, reason: str = REFUND_REASON_DEFAULT):
    client = _client()
    params = {"payment_intent": payment_intent_id, "reason": reason}
    if amount_cents is not None:
        params["amount"] = amount_cents
    return client.Refund.create(**params)


def construct_webhook_event(payload: bytes, signature: str):
    """Verify the Stripe-Signature header. Raises ValueError / stripe.error.SignatureVerificationError."""
    s = get_settings()
    if not s.stripe_webhook_secret:
        raise PaymentsNotConfigured("Webhook secret is not configured. Set STRIPE_WEBHOOK_SECRET in .env.")
    return stripe.Webhook.construct_event(payload, signature, s.stripe_webhook_secret)
