"""NFT holder discounts: 50% on workspaces, 10% at the cafe."""
from typing import Iterable

from app.schemas.pricing import PriceQuote, DiscountBreakdown

CATEGORY_WORKSPACE = "workspace"
CATEGORY_CAFE = "cafe"

DISCOUNT_RATES = {
    CATEGORY_WORKSPACE: 0.5,
    CATEGORY_CAFE: 0.1,
}

PRICE_TOLERANCE = 0.01


def _rate(category: str) -> float:
    try:
        return DISCOUNT_RATES[category]
    except KeyError:
        raise ValueError(f"Unknown pricing category: {category}")


def _quote(price: float, category: str, is_nft_holder: bool) -> PriceQuote:
    if price < 0:
        raise ValueError("Price cannot be negative")
    rate = _rate(category) if is_nft_holder else 0.0
    discount_amount = round(price * rate, 2)
    return PriceQuote(
        original=round(price, 2),
        discount=rate,
        discount_amount=discount_amount,
        final=round(price - discount_amount, 2),
        is_nft_holder=is_nft_holder,
    )


def calculate_workspace_price(price: float, is_nft_holder: bool) -> PriceQuote:
    return _quote(price, CATEGORY_WORKSPACE, is_nft_holder)


def calculate_cafe_price(price: float, is_nft_holder: bool) -> PriceQuote:
    return _quote(price, CATEGORY_CAFE, is_nft_holder)


def apply_nft_discount(price: float, category: str, is_nft_holder: bool) -> float:
    return _quote(price, category, is_nft_holder).final


def calculate_bulk_price(items: Iterable[dict], category: str, is_nft_holder: bool) -> PriceQuote:
    """Sum of price × quantity (quantity defaults to 1), discounted once on the total."""
    total = sum(float(item["price"]) * int(item.get("quantity") or 1) for item in items)
    return _quote(total, category, is_nft_holder)


def validate_discounted_price(original: float, charged: float, category: str, is_nft_holder: bool) -> bool:
    """True if the charged amount matches the expected discounted price within a cent."""
    expected = apply_nft_discount(original, category, is_nft_holder)
    return abs(expected - charged) <= PRICE_TOLERANCE


def create_pricing_breakdown(price: float, category: str, is_nft_holder: bool) -> DiscountBreakdown:
    quote = _quote(price, category, is_nft_holder)
    savings = None
    if is_nft_holder:
        savings = f"Save ${quote.discount_amount:.2f} with NFT holder discount"
    return DiscountBreakdown(
        base_price=quote.original,
        discount_rate=quote.discount,
        discount_amount=quote.discount_amount,
        final_price=quote.final,
        nft_holder=is_nft_holder,
        category=category,
        savings=savings,
    )


def format_pricing_display(price: float, category: str, is_nft_holder: bool) -> str:
    quote = _quote(price, category, is_nft_holder)
    if not is_nft_holder:
        return f"${quote.final:.2f}"
    return f"${quote.final:.2f} ({int(quote.discount * 100)}% NFT holder discount)"
