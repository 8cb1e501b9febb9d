"""Tests for Stripe webhook verification and event handling."""

import time
from datetime import timedelta
from unittest.mock import patch

import pytest
import stripe

from app.models.booking import Booking, BookingType, BookingStatus, PaymentStatus
from app.models.cafe import CafeOrder
from app.models.membership import MembershipCredit, CreditStatus, CreditType
from app.models.user import MembershipStatus
from app.services import credits as credit_service
from app.services.payments import PaymentsNotConfigured
from app.services.stripe_webhooks import handle_payment_succeeded
from app.services.time_utils import utcnow

pytestmark = pytest.mark.api

HEADERS = {"Stripe-Signature": "t=1,v1=test"}


def _post_event(client, event):
    with patch("app.routers.webhooks.construct_webhook_event", return_value=event):
        return client.post("/webhooks/stripe", content=b"{}", headers=HEADERS)


@pytest.fixture
def pending_booking(db_session, member, hot_desk, future_date):
    booking = Booking(
        user_id=member.id, workspace_id=hot_desk.id, booking_type=BookingType.hourly_desk,
        booking_date=future_date, start_time="09:00", end_time="11:00", duration_hours=2,
        subtotal=5, processing_fee=2, total_price=7, confirmation_code="PAY00001",
    )
    db_session.add(booking)
    db_session.commit()
    return booking


class TestVerification:
    def test_missing_signature(self, client):
        assert client.post("/webhooks/stripe", content=b"{}").status_code == 400

    def test_secret_not_configured(self, client):
        response = client.post("/webhooks/stripe", content=b"{}", headers=HEADERS)
        assert response.status_code == 503

    def test_bad_signature(self, client):
        error = stripe.SignatureVerificationError("No signatures found", "t=1,v1=test")
        with patch("app.routers.webhooks.construct_webhook_event", side_effect=error):
            response = client.post("/webhooks/stripe", content=b"{}", headers=HEADERS)
        assert response.status_code == 400

    def test_unconfigured_maps_to_503(self, client):
        with patch("app.routers.webhooks.construct_webhook_event", side_effect=PaymentsNotConfigured("off")):
            response = client.post("/webhooks/stripe", content=b"{}", headers=HEADERS)
        assert response.status_code == 503

    def test_unknown_event_acknowledged(self, client):
        response = _post_event(client, {"type": "charge.dispute.created", "data": {"object": {}}})
        assert response.status_code == 200
        assert response.json()["result"]["handled"] is False


class TestPaymentEvents:
    def test_booking_paid(self, client, db_session, pending_booking):
        event = {
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_1", "amount_received": 700, "metadata": {"booking_id": str(pending_booking.id)}}},
        }
        with patch("app.services.stripe_webhooks.send_payment_receipt", return_value=True) as receipt:
            response = _post_event(client, event)
        assert response.status_code == 200
        db_session.refresh(pending_booking)
        assert pending_booking.status == BookingStatus.confirmed
        assert pending_booking.payment_status == PaymentStatus.paid
        assert pending_booking.payment_intent_id == "pi_1"
        assert receipt.call_args.args[3] == 7.0

    def test_order_paid(self, client, db_session, member):
        order = CafeOrder(user_id=member.id, items=[], subtotal=4, total_price=4.42)
        db_session.add(order)
        db_session.commit()
        event = {
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_2", "amount": 442, "metadata": {"order_id": str(order.id)}}},
        }
        assert _post_event(client, event).status_code == 200
        db_session.refresh(order)
        assert order.payment_status == PaymentStatus.paid

    def test_payment_failed_keeps_booking_pending(self, client, db_session, pending_booking):
        event = {
            "type": "payment_intent.payment_failed",
            "data": {"object": {"id": "pi_3", "amount": 700, "metadata": {"booking_id": str(pending_booking.id)}}},
        }
        with patch("app.services.stripe_webhooks.send_payment_failed", return_value=True) as failed:
            response = _post_event(client, event)
        assert response.json()["result"]["booking_id"] == pending_booking.id
        failed.assert_called_once()
        db_session.refresh(pending_booking)
        assert pending_booking.payment_status == PaymentStatus.pending

    def test_missing_booking_reported(self, client):
        event = {"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_4", "metadata": {"booking_id": "999"}}}}
        assert _post_event(client, event).json()["result"]["handled"] is False

    def test_handler_error_rolls_back(self, client):
        with patch("app.routers.webhooks.dispatch_event", side_effect=RuntimeError("db down")):
            response = _post_event(client, {"type": "payment_intent.succeeded", "data": {"object": {}}})
        assert response.status_code == 500

    def test_failed_commit_sends_nothing(self, client, db_session, pending_booking):
        event = {
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_5", "amount": 700, "metadata": {"booking_id": str(pending_booking.id)}}},
        }
        with patch("app.services.stripe_webhooks.send_payment_receipt", return_value=True) as receipt, \
                patch("app.services.stripe_webhooks.realtime.publish_booking_event") as publish, \
                patch.object(db_session, "commit", side_effect=RuntimeError("commit failed")):
            response = _post_event(client, event)
        assert response.status_code == 500
        receipt.assert_not_called()
        publish.assert_not_called()
        db_session.refresh(pending_booking)
        assert pending_booking.payment_status == PaymentStatus.pending

    def test_handler_queues_sends_without_calling(self, db_session, pending_booking):
        outbox = []
        intent = {"id": "pi_6", "amount": 700, "metadata": {"booking_id": str(pending_booking.id)}}
        with patch("app.services.stripe_webhooks.send_payment_receipt", return_value=True) as receipt:
            result = handle_payment_succeeded(db_session, intent, outbox)
            receipt.assert_not_called()
            assert len(outbox) == 2
            outbox[0]()
        assert result["handled"] is True
        assert receipt.call_args.args[3] == 7.0


class TestSubscriptionEvents:
    def _subscription(self, user, plan, **extra):
        now = int(time.time())
        return {
            "id": "sub_1",
            "status": "active",
            "current_period_start": now - 60,
            "current_period_end": now + 30 * 86400,
            "metadata": {"user_id": str(user.id), "membership_plan_id": str(plan.id)},
            **extra,
        }

    def test_created_activates_and_allocates(self, client, db_session, member, resident_plan):
        event = {"type": "customer.subscription.created", "data": {"object": self._subscription(member, resident_plan)}}
        assert _post_event(client, event).status_code == 200
        db_session.refresh(member)
        assert member.membership_status == MembershipStatus.active
        assert member.stripe_subscription_id == "sub_1"
        assert credit_service.get_available_amount(db_session, member.id, CreditType.meeting_room) == 8

    def test_updated_with_cancel_at_period_end(self, client, db_session, member, resident_plan):
        member.stripe_subscription_id = "sub_1"
        db_session.commit()
        sub = self._subscription(member, resident_plan, cancel_at_period_end=True)
        sub["current_period_start"] -= 86400
        response = _post_event(client, {"type": "customer.subscription.updated", "data": {"object": sub}})
        assert response.json()["result"]["status"] == "cancelled"
        assert response.json()["result"]["renewed"] is False

    def test_deleted_expires_credits(self, client, db_session, member, resident_plan):
        _post_event(client, {"type": "customer.subscription.created", "data": {"object": self._subscription(member, resident_plan)}})
        response = _post_event(client, {"type": "customer.subscription.deleted", "data": {"object": {"id": "sub_1"}}})
        assert response.json()["result"]["credits_expired"] == 3
        statuses = {c.status for c in db_session.query(MembershipCredit).filter(MembershipCredit.user_id == member.id)}
        assert statuses == {CreditStatus.expired}

    def test_updated_at_period_start_renews_credits(self, client, db_session, member, resident_plan):
        member.stripe_subscription_id = "sub_1"
        member.membership_plan_id = resident_plan.id
        previous_start = utcnow() - timedelta(days=30)
        credit_service.allocate_credits(db_session, member, resident_plan, previous_start, utcnow())
        credit_service.deduct_credits(db_session, member.id, CreditType.meeting_room, 3, description="Focus room")
        db_session.commit()
        assert credit_service.get_available_amount(db_session, member.id, CreditType.meeting_room) == 5

        sub = self._subscription(member, resident_plan)
        with patch("app.services.stripe_webhooks.send_credit_allocation", return_value=True) as allocation:
            response = _post_event(client, {"type": "customer.subscription.updated", "data": {"object": sub}})
        result = response.json()["result"]
        assert result["status"] == "active"
        assert result["renewed"] is True
        allocation.assert_called_once()
        assert credit_service.get_available_amount(db_session, member.id, CreditType.meeting_room) == 8
