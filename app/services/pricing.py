"""Booking pricing: hourly desks, meeting rooms with credits, day passes, check-out reconciliation."""
from datetime import datetime

from app.models.booking import PaymentMethod
from app.models.membership import MembershipPlan
from app.schemas.pricing import PricingBreakdown, FinalCharge

PROCESSING_FEE = 2.00
HOT_DESK_BASE_RATE = 2.50
DAY_PASS_PRICE = 25.00
NFT_DISCOUNT_RATE = 0.5


def _money(value: float) -> float:
    return round(value, 2)


def calculate_hourly_desk_pricing(
    duration_hours: float,
    nft_holder: bool,
    membership_plan: MembershipPlan | None = None,
    membership_active: bool = False,
) -> PricingBreakdown:
    if membership_plan is not None and membership_active and membership_plan.includes_hot_desk:
        return PricingBreakdown(
            base_price=HOT_DESK_BASE_RATE,
            subtotal=0.0,
            total_price=0.0,
            payment_method=PaymentMethod.membership,
        )

    subtotal = HOT_DESK_BASE_RATE * duration_hours
    discount = subtotal * NFT_DISCOUNT_RATE if nft_holder else 0.0
    discounted = subtotal - discount
    return PricingBreakdown(
        base_price=HOT_DESK_BASE_RATE,
        subtotal=_money(subtotal),
        discount_amount=_money(discount),
        nft_discount_applied=nft_holder,
        processing_fee=PROCESSING_FEE,
        total_price=_money(discounted + PROCESSING_FEE),
        payment_method=PaymentMethod.card,
    )


def calculate_meeting_room_pricing(
    base_price_hourly: float,
    duration_hours: float,
    available_credits: float,
    nft_holder: bool,
) -> PricingBreakdown:
    """Credits cover hours first; only the overage is charged, and only an overage carries the fee."""
    credits_used = min(duration_hours, max(0.0, available_credits))
    overage_hours = max(0.0, duration_hours - credits_used)
    overage = overage_hours * base_price_hourly
    discount = overage * NFT_DISCOUNT_RATE if nft_holder and overage > 0 else 0.0
    overage_after_discount = overage - discount
    fee = PROCESSING_FEE if overage_hours > 0 else 0.0
    return PricingBreakdown(
        base_price=base_price_hourly,
        subtotal=_money(overage_after_discount),
        discount_amount=_money(discount),
        nft_discount_applied=discount > 0,
        credits_used=credits_used,
        credits_overage_hours=overage_hours,
        overage_charge=_money(overage_after_discount),
        processing_fee=fee,
        total_price=_money(overage_after_discount + fee),
        payment_method=PaymentMethod.credits if overage_hours == 0 else PaymentMethod.card,
    )


def calculate_day_pass_pricing(nft_holder: bool) -> PricingBreakdown:
    discount = DAY_PASS_PRICE * NFT_DISCOUNT_RATE if nft_holder else 0.0
    return PricingBreakdown(
        base_price=DAY_PASS_PRICE,
        subtotal=DAY_PASS_PRICE,
        discount_amount=_money(discount),
        nft_discount_applied=nft_holder,
        processing_fee=PROCESSING_FEE,
        total_price=_money(DAY_PASS_PRICE - discount + PROCESSING_FEE),
        payment_method=PaymentMethod.card,
    )


def hourly_rate(nft_holder: bool) -> float:
    return HOT_DESK_BASE_RATE * (1 - NFT_DISCOUNT_RATE) if nft_holder else HOT_DESK_BASE_RATE


def calculate_final_charge(
    booked_hours: float,
    actual_hours: float,
    subtotal_paid: float,
    fee_paid: float,
    nft_holder: bool,
) -> FinalCharge:
    """Reconcile an hourly desk booking at check-out: refund early leavers, bill overtime."""
    rate = hourly_rate(nft_holder)
    initial = _money(subtotal_paid + fee_paid)

    if actual_hours < booked_hours:
        final = _money(actual_hours * rate + fee_paid)
        refund = _money(max(0.0, initial - final))
        return FinalCharge(
            booked_hours=booked_hours,
            actual_hours=actual_hours,
            initial_charge=initial,
            final_charge=final,
            refund_amount=refund,
            description=f"Used {actual_hours} hours of {booked_hours} hours booked. Refund issued.",
        )
    if actual_hours > booked_hours:
        extra_hours = _money(actual_hours - booked_hours)
        overage = _money(extra_hours * rate)
        return FinalCharge(
            booked_hours=booked_hours,
            actual_hours=actual_hours,
            initial_charge=initial,
            final_charge=_money(initial + overage),
            overage_charge=overage,
            description=f"Overtime: {extra_hours} extra hours charged.",
        )
    return FinalCharge(
        booked_hours=booked_hours,
        actual_hours=actual_hours,
        initial_charge=initial,
        final_charge=initial,
        description="Used exactly the booked time.",
    )


def parse_time(value: str) -> tuple[int, int]:
    """'HH:MM' or 'HH:MM:SS' -> (hour, minute)."""
    parts = (value or "").strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 24 and 0 <= minute < 60) or (hour == 24 and minute):
        raise ValueError(f"Invalid time: {value!r}")
    return hour, minute


def time_to_minutes(value: str) -> int:
    hour, minute = parse_time(value)
    return hour * 60 + minute


def calculate_duration_hours(start_time: str, end_time: str) -> float:
    """Hours between two clock times; an end before the start wraps past midnight."""
    minutes = time_to_minutes(end_time) - time_to_minutes(start_time)
    if minutes < 0:
        minutes += 24 * 60
    return round(minutes / 60, 2)


def calculate_actual_duration(check_in: datetime, check_out: datetime) -> float:
    return round((check_out - check_in).total_seconds() / 3600, 2)


def validate_booking_duration(duration_hours: float, min_duration: float, max_duration: float) -> str | None:
    """Error message, or None when the duration is within the workspace limits."""
    if duration_hours < min_duration:
        return f"Minimum booking duration is {min_duration:g} hours"
    if duration_hours > max_duration:
        return f"Maximum booking duration is {max_duration:g} hours"
    return None


def format_price(amount: float) -> str:
    return f"${amount:.2f}"


def get_pricing_summary(pricing: PricingBreakdown) -> list[str]:
    lines = []
    if pricing.payment_method == PaymentMethod.membership:
        return ["Included in your membership"]
    if pricing.credits_used > 0:
        lines.append(f"Credits used: {pricing.credits_used:g} hours")
        if pricing.credits_overage_hours > 0:
            lines.append(
                f"Overage: {pricing.credits_overage_hours:g} hours ({format_price(pricing.overage_charge)})"
            )
    else:
        lines.append(f"Subtotal: {format_price(pricing.subtotal)}")
    if pricing.discount_amount > 0:
        lines.append(f"NFT holder discount: -{format_price(pricing.discount_amount)}")
    if pricing.processing_fee > 0:
        lines.append(f"Processing fee: {format_price(pricing.processing_fee)}")
    lines.append(f"Total: {format_price(pricing.total_price)}")
    return lines
