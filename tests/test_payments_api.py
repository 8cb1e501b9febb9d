"""Tests for booking payment intents and refunds."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from conftest import auth_headers
from app.models.audit_log import AuditLog
from app.models.booking import Booking, BookingType, BookingStatus, PaymentStatus
from app.services import payments

pytestmark = pytest.mark.api


@pytest.fixture
def booking(db_session, member, hot_desk, future_date):
    b = Booking(
        user_id=member.id, workspace_id=hot_desk.id, booking_type=BookingType.hourly_desk,
        booking_date=future_date, start_time="09:00", end_time="11:00", duration_hours=2,
        subtotal=5, processing_fee=2, total_price=7, confirmation_code="PAYT0001",
    )
    db_session.add(b)
    db_session.commit()
    return b


@pytest.mark.unit
class TestAmounts:
    def test_dollars_to_cents_rounds(self):
        assert payments.dollars_to_cents(19.99) == 1999
        assert payments.cents_to_dollars(905) == 9.05

    def test_card_fee(self):
        assert payments.card_processing_fee_cents(1000) == 59
        assert payments.card_processing_fee_cents(0) == 30

    def test_client_requires_key(self):
        with pytest.raises(payments.PaymentsNotConfigured):
            payments.get_subscription("sub_1")


@pytest.fixture
def stripe_on():
    with patch("app.services.payments.stripe_configured", return_value=True):
        yield


class TestCreateIntent:
    def test_not_configured(self, client, member, booking):
        response = client.post("/payments/create-intent", json={"booking_id": booking.id}, headers=auth_headers(member))
        assert response.status_code == 503

    def test_other_users_booking(self, client, stripe_on, nft_member, booking):
        response = client.post("/payments/create-intent", json={"booking_id": booking.id}, headers=auth_headers(nft_member))
        assert response.status_code == 403

    def test_already_paid(self, client, db_session, stripe_on, member, booking):
        booking.payment_status = PaymentStatus.paid
        db_session.commit()
        response = client.post("/payments/create-intent", json={"booking_id": booking.id}, headers=auth_headers(member))
        assert response.status_code == 400

    def test_creates_intent(self, client, db_session, stripe_on, member, booking):
        intent = {"id": "pi_7", "client_secret": "pi_7_secret"}
        with patch("app.services.payments.get_or_create_customer", return_value=SimpleNamespace(id="cus_1")), \
                patch("app.services.payments.create_payment_intent", return_value=intent) as create:
            response = client.post("/payments/create-intent", json={"booking_id": booking.id}, headers=auth_headers(member))
        assert response.status_code == 200
        assert response.json()["amount"] == 7.0
        assert create.call_args.args[0] == 700
        assert create.call_args.args[2]["confirmation_code"] == "PAYT0001"
        db_session.refresh(booking)
        assert booking.payment_intent_id == "pi_7"


class TestRefund:
    @pytest.fixture
    def paid(self, db_session, booking):
        booking.payment_status = PaymentStatus.paid
        booking.payment_intent_id = "pi_paid"
        db_session.commit()
        return booking

    def test_must_cancel_first(self, client, stripe_on, member, paid):
        response = client.post("/payments/refund", json={"booking_id": paid.id}, headers=auth_headers(member))
        assert response.status_code == 400

    def test_over_refund_rejected(self, client, db_session, stripe_on, member, paid):
        paid.status = BookingStatus.cancelled
        db_session.commit()
        response = client.post("/payments/refund", json={"booking_id": paid.id, "amount": 50}, headers=auth_headers(member))
        assert response.status_code == 400

    def test_admin_refunds_partial(self, client, db_session, stripe_on, admin, paid):
        with patch("app.services.payments.create_refund", return_value={"id": "re_1", "status": "succeeded"}) as create, \
                patch("app.routers.payments.send_payment_receipt", return_value=True):
            response = client.post(
                "/payments/refund", json={"booking_id": paid.id, "amount": 3.5, "reason": "Wifi outage"},
                headers=auth_headers(admin),
            )
        assert response.status_code == 200
        assert response.json()["payment_status"] == "refunded"
        assert create.call_args.args == ("pi_paid", 350)
        db_session.refresh(paid)
        assert paid.refund_amount == 3.5
        assert db_session.query(AuditLog).one().action == "refund"

    def test_unpaid_booking(self, client, stripe_on, admin, booking):
        response = client.post("/payments/refund", json={"booking_id": booking.id}, headers=auth_headers(admin))
        assert response.status_code == 400
