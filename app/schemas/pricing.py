"""Pricing results shared by bookings, payments and the cost estimator."""
from pydantic import BaseModel
from app.models.booking import PaymentMethod


class PricingBreakdown(BaseModel):
    base_price: float
    subtotal: float
    discount_amount: float = 0.0
    nft_discount_applied: bool = False
    credits_used: float = 0.0
    credits_overage_hours: float = 0.0
    overage_charge: float = 0.0
    processing_fee: float = 0.0
    total_price: float
    payment_method: PaymentMethod = PaymentMethod.card


class FinalCharge(BaseModel):
    booked_hours: float
    actual_hours: float
    initial_charge: float
    final_charge: float
    refund_amount: float = 0.0
    overage_charge: float = 0.0
    description: str


class PriceQuote(BaseModel):
    """One price with the NFT discount applied (workspace or cafe)."""
    original: float
    discount: float
    discount_amount: float
    final: float
    is_nft_holder: bool


class DiscountBreakdown(BaseModel):
    base_price: float
    discount_rate: float
    discount_amount: float
    final_price: float
    nft_holder: bool
    category: str
    savings: str | None = None
