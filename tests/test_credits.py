"""Tests for membership credit allocation, usage, refunds and expiry."""

from datetime import datetime, timedelta, timezone

import pytest

from app.models.membership import CreditType, CreditStatus, TransactionType
from app.services import credits as credit_service
from app.services.credits import InsufficientCreditsError

pytestmark = pytest.mark.unit

CYCLE_START = datetime(2026, 3, 1, tzinfo=timezone.utc)
CYCLE_END = datetime(2026, 3, 31, tzinfo=timezone.utc)


@pytest.fixture
def allocated(db_session, resident, resident_plan):
    credit_service.allocate_credits(db_session, resident, resident_plan, CYCLE_START, CYCLE_END)
    db_session.commit()
    return resident


class TestAllocation:
    def test_allocates_each_nonzero_type(self, db_session, allocated):
        balance = credit_service.get_credit_balance(db_session, allocated.id)
        assert balance[CreditType.meeting_room].remaining_amount == 8
        assert balance[CreditType.printing].remaining_amount == 100
        assert balance[CreditType.guest_pass].remaining_amount == 2

    def test_reallocation_resets_same_cycle(self, db_session, allocated, resident_plan):
        credit_service.deduct_credits(db_session, allocated.id, CreditType.meeting_room, 3)
        credit_service.allocate_credits(db_session, allocated, resident_plan, CYCLE_START, CYCLE_END)
        db_session.commit()
        credit = credit_service.get_active_credit(db_session, allocated.id, CreditType.meeting_room)
        assert credit.remaining_amount == 8
        assert credit.used_amount == 0

    def test_allocation_is_logged(self, db_session, allocated):
        txns = credit_service.get_transactions(db_session, allocated.id, CreditType.meeting_room)
        assert [t.transaction_type for t in txns] == [TransactionType.allocation]
        assert txns[0].balance_after == 8


class TestUsageAndRefund:
    def test_deduct(self, db_session, allocated):
        txn = credit_service.deduct_credits(db_session, allocated.id, CreditType.meeting_room, 2.5, description="Focus Room")
        assert txn.amount == -2.5
        assert txn.balance_after == 5.5
        assert credit_service.get_available_amount(db_session, allocated.id, CreditType.meeting_room) == 5.5

    def test_deduct_more_than_available(self, db_session, allocated):
        with pytest.raises(InsufficientCreditsError) as exc:
            credit_service.deduct_credits(db_session, allocated.id, CreditType.meeting_room, 9)
        assert exc.value.available == 8

    def test_deduct_without_balance(self, db_session, member):
        with pytest.raises(InsufficientCreditsError):
            credit_service.deduct_credits(db_session, member.id, CreditType.printing, 1)

    def test_refund_restores_balance(self, db_session, allocated):
        credit_service.deduct_credits(db_session, allocated.id, CreditType.meeting_room, 3)
        credit_service.refund_credits(db_session, allocated.id, CreditType.meeting_room, 3)
        credit = credit_service.get_active_credit(db_session, allocated.id, CreditType.meeting_room)
        assert credit.remaining_amount == 8
        assert credit.used_amount == 0

    def test_refund_without_active_balance(self, db_session, member):
        assert credit_service.refund_credits(db_session, member.id, CreditType.meeting_room, 1) is None


class TestExpiry:
    def test_expires_ended_cycles_only(self, db_session, allocated):
        assert credit_service.expire_credits(db_session, now=CYCLE_END - timedelta(days=1)) == 0
        expired = credit_service.expire_credits(db_session, now=CYCLE_END + timedelta(minutes=1))
        assert expired == 3
        assert credit_service.get_active_credit(db_session, allocated.id, CreditType.meeting_room) is None

    def test_expire_for_user_ignores_cycle_end(self, db_session, allocated):
        credit_service.expire_credits(db_session, user_id=allocated.id, now=CYCLE_START)
        db_session.commit()
        rows = credit_service.get_transactions(db_session, allocated.id, CreditType.guest_pass)
        assert rows[0].transaction_type == TransactionType.expiration
        assert rows[0].amount == -2
        assert rows[0].membership_credit.status == CreditStatus.expired


class TestSummary:
    def test_net_balance(self, db_session, allocated):
        credit_service.deduct_credits(db_session, allocated.id, CreditType.meeting_room, 3)
        credit_service.refund_credits(db_session, allocated.id, CreditType.meeting_room, 1)
        summary = credit_service.summarize_transactions(
            credit_service.get_transactions(db_session, allocated.id, CreditType.meeting_room)
        )
        row = summary["meeting-room"]
        assert row["total_allocated"] == 8
        assert row["total_used"] == 3
        assert row["total_refunded"] == 1
        assert row["net_balance"] == 6
