"""Tests for booking pricing and check-out reconciliation."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.models.booking import PaymentMethod
from app.services.pricing import (
    calculate_hourly_desk_pricing,
    calculate_meeting_room_pricing,
    calculate_day_pass_pricing,
    calculate_final_charge,
    calculate_duration_hours,
    calculate_actual_duration,
    validate_booking_duration,
    get_pricing_summary,
    parse_time,
)

pytestmark = pytest.mark.unit


# =============================================================================
# HOURLY DESK
# =============================================================================


class TestHourlyDeskPricing:
    def test_regular_rate_with_fee(self):
        pricing = calculate_hourly_desk_pricing(4, nft_holder=False)
        assert pricing.subtotal == 10.00
        assert pricing.discount_amount == 0
        assert pricing.processing_fee == 2.00
        assert pricing.total_price == 12.00
        assert pricing.payment_method == PaymentMethod.card

    def test_nft_holder_gets_half_off(self):
        pricing = calculate_hourly_desk_pricing(4, nft_holder=True)
        assert pricing.discount_amount == 5.00
        assert pricing.nft_discount_applied is True
        assert pricing.total_price == 7.00

    def test_membership_with_hot_desk_is_free(self):
        plan = SimpleNamespace(includes_hot_desk=True)
        pricing = calculate_hourly_desk_pricing(3, nft_holder=False, membership_plan=plan, membership_active=True)
        assert pricing.total_price == 0
        assert pricing.processing_fee == 0
        assert pricing.payment_method == PaymentMethod.membership

    def test_inactive_membership_pays(self):
        plan = SimpleNamespace(includes_hot_desk=True)
        pricing = calculate_hourly_desk_pricing(2, nft_holder=False, membership_plan=plan, membership_active=False)
        assert pricing.total_price == 7.00


# =============================================================================
# MEETING ROOMS
# =============================================================================


class TestMeetingRoomPricing:
    def test_fully_covered_by_credits(self):
        pricing = calculate_meeting_room_pricing(25.0, 2, available_credits=8, nft_holder=False)
        assert pricing.credits_used == 2
        assert pricing.credits_overage_hours == 0
        assert pricing.total_price == 0
        assert pricing.processing_fee == 0
        assert pricing.payment_method == PaymentMethod.credits

    def test_overage_is_charged_with_fee(self):
        pricing = calculate_meeting_room_pricing(25.0, 3, available_credits=1, nft_holder=False)
        assert pricing.credits_used == 1
        assert pricing.credits_overage_hours == 2
        assert pricing.overage_charge == 50.00
        assert pricing.total_price == 52.00
        assert pricing.payment_method == PaymentMethod.card

    def test_nft_discount_applies_to_overage_only(self):
        pricing = calculate_meeting_room_pricing(25.0, 3, available_credits=1, nft_holder=True)
        assert pricing.discount_amount == 25.00
        assert pricing.total_price == 27.00

    def test_nft_flag_false_when_nothing_to_discount(self):
        pricing = calculate_meeting_room_pricing(25.0, 1, available_credits=4, nft_holder=True)
        assert pricing.nft_discount_applied is False

    def test_negative_credit_balance_treated_as_zero(self):
        pricing = calculate_meeting_room_pricing(40.0, 1, available_credits=-3, nft_holder=False)
        assert pricing.credits_used == 0
        assert pricing.total_price == 42.00


class TestDayPassPricing:
    def test_regular(self):
        assert calculate_day_pass_pricing(False).total_price == 27.00

    def test_nft_holder(self):
        pricing = calculate_day_pass_pricing(True)
        assert pricing.discount_amount == 12.50
        assert pricing.total_price == 14.50


# =============================================================================
# CHECK-OUT RECONCILIATION
# =============================================================================


class TestFinalCharge:
    def test_early_checkout_refunds_unused_time(self):
        charge = calculate_final_charge(4, 2, subtotal_paid=10.0, fee_paid=2.0, nft_holder=False)
        assert charge.initial_charge == 12.00
        assert charge.final_charge == 7.00
        assert charge.refund_amount == 5.00

    def test_overtime_is_billed(self):
        charge = calculate_final_charge(2, 3, subtotal_paid=5.0, fee_paid=2.0, nft_holder=False)
        assert charge.overage_charge == 2.50
        assert charge.final_charge == 9.50
        assert charge.refund_amount == 0

    def test_overtime_uses_discounted_rate(self):
        charge = calculate_final_charge(2, 4, subtotal_paid=2.5, fee_paid=2.0, nft_holder=True)
        assert charge.overage_charge == 2.50

    def test_exact_usage(self):
        charge = calculate_final_charge(2, 2, subtotal_paid=5.0, fee_paid=2.0, nft_holder=False)
        assert charge.final_charge == charge.initial_charge == 7.00


# =============================================================================
# TIME HELPERS
# =============================================================================


class TestTimeHelpers:
    def test_duration(self):
        assert calculate_duration_hours("09:00", "11:30") == 2.5

    def test_duration_wraps_midnight(self):
        assert calculate_duration_hours("22:00", "01:00") == 3

    def test_actual_duration(self):
        start = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        assert calculate_actual_duration(start, start + timedelta(minutes=90)) == 1.5

    @pytest.mark.parametrize("value", ["9", "25:00", "10:75", ""])
    def test_parse_time_rejects_garbage(self, value):
        with pytest.raises(ValueError):
            parse_time(value)

    def test_validate_duration(self):
        assert validate_booking_duration(0.5, 1, 12) == "Minimum booking duration is 1 hours"
        assert validate_booking_duration(9, 0.5, 8) == "Maximum booking duration is 8 hours"
        assert validate_booking_duration(2, 1, 8) is None


class TestPricingSummary:
    def test_membership_summary(self):
        plan = SimpleNamespace(includes_hot_desk=True)
        pricing = calculate_hourly_desk_pricing(2, False, plan, True)
        assert get_pricing_summary(pricing) == ["Included in your membership"]

    def test_credits_with_overage(self):
        lines = get_pricing_summary(calculate_meeting_room_pricing(25.0, 3, 1, False))
        assert lines[0] == "Credits used: 1 hours"
        assert lines[1] == "Overage: 2 hours ($50.00)"
        assert lines[-1] == "Total: $52.00"

    def test_card_with_discount(self):
        lines = get_pricing_summary(calculate_hourly_desk_pricing(4, True))
        assert "NFT holder discount: -$5.00" in lines
        assert "Processing fee: $2.00" in lines
