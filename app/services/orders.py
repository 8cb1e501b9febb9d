"""Cafe orders: totals with the NFT discount and card fee, status transitions, statistics."""
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.booking import PaymentStatus
from app.models.cafe import CafeOrder, MenuItem, OrderStatus
from app.models.user import User
from app.schemas.cafe import MAX_ITEM_QUANTITY
from app.services.nft_discounts import DISCOUNT_RATES, CATEGORY_CAFE

logger = logging.getLogger(__name__)

ORDER_FEE_PERCENT = 0.029
ORDER_FEE_FIXED = 0.30

ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.pending: {OrderStatus.preparing, OrderStatus.cancelled},
    OrderStatus.preparing: {OrderStatus.ready, OrderStatus.cancelled},
    OrderStatus.ready: {OrderStatus.completed, OrderStatus.cancelled},
    OrderStatus.completed: set(),
    OrderStatus.cancelled: set(),
}


class OrderError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def calculate_order_totals(line_items: list[dict], is_nft_holder: bool) -> dict:
    """line_items: [{unit_price, quantity}]. Every amount is rounded to cents."""
    subtotal = round(sum(float(i["unit_price"]) * int(i["quantity"]) for i in line_items), 2)
    discount = round(subtotal * DISCOUNT_RATES[CATEGORY_CAFE], 2) if is_nft_holder else 0.0
    after_discount = round(subtotal - discount, 2)
    fee = round(after_discount * ORDER_FEE_PERCENT + ORDER_FEE_FIXED, 2)
    return {
        "subtotal": subtotal,
        "discount_amount": discount,
        "nft_discount_applied": is_nft_holder and discount > 0,
        "processing_fee": fee,
        "total_price": round(after_discount + fee, 2),
    }


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


def create_order(db: Session, user: User, items: list, special_instructions: str | None = None) -> CafeOrder:
    """items: objects with menu_item_id and quantity. Merges duplicate lines."""
    quantities: dict[int, int] = {}
    for line in items:
        quantities[line.menu_item_id] = quantities.get(line.menu_item_id, 0) + line.quantity

    menu = {m.id: m for m in db.query(MenuItem).filter(MenuItem.id.in_(list(quantities))).all()}
    missing = [i for i in quantities if i not in menu]
    if missing:
        raise OrderError(f"Menu item not found: {missing[0]}", 404)
    not_orderable = [menu[i].title for i in quantities if not menu[i].orderable]
    if not_orderable:
        raise OrderError(f"Item is not available for ordering: {not_orderable[0]}")
    too_many = [menu[i].title for i, qty in quantities.items() if qty > MAX_ITEM_QUANTITY]
    if too_many:
        raise OrderError(f"At most {MAX_ITEM_QUANTITY} of each item per order: {too_many[0]}")

    lines = []
    for item_id, qty in quantities.items():
        item = menu[item_id]
        price = float(item.price)
        lines.append({
            "menu_item_id": item.id,
            "title": item.title,
            "quantity": qty,
            "unit_price": price,
            "subtotal": round(price * qty, 2),
        })
    totals = calculate_order_totals(lines, user.nft_holder)
    order = CafeOrder(
        user_id=user.id,
        items=lines,
        special_instructions=(special_instructions or "").strip() or None,
        status=OrderStatus.pending,
        payment_status=PaymentStatus.pending,
        **totals,
    )
    db.add(order)
    db.flush()
    logger.info("Cafe order %s created for user %s total=%s", order.id, user.id, order.total_price)
    return order


def update_order_status(db: Session, order: CafeOrder, new_status: OrderStatus) -> OrderStatus:
    """Apply a transition; returns the previous status."""
    previous = order.status
    if previous == new_status:
        raise OrderError(f"Order is already {new_status.value}")
    if not can_transition(previous, new_status):
        raise OrderError(f"Cannot change order status from {previous.value} to {new_status.value}")
    order.status = new_status
    db.flush()
    return previous


def list_orders(
    db: Session,
    user_id: int | None = None,
    status: OrderStatus | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[CafeOrder], int]:
    q = db.query(CafeOrder)
    if user_id is not None:
        q = q.filter(CafeOrder.user_id == user_id)
    if status is not None:
        q = q.filter(CafeOrder.status == status)
    total = q.count()
    rows = q.order_by(CafeOrder.created_at.desc(), CafeOrder.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return rows, total


def get_order_stats(db: Session) -> dict:
    """Revenue counts paid, non-cancelled orders only."""
    by_status = dict(
        db.query(CafeOrder.status, func.count(CafeOrder.id)).group_by(CafeOrder.status).all()
    )
    revenue_q = db.query(func.count(CafeOrder.id), func.coalesce(func.sum(CafeOrder.total_price), 0)).filter(
        CafeOrder.payment_status == PaymentStatus.paid,
        CafeOrder.status != OrderStatus.cancelled,
    )
    paid_count, revenue = revenue_q.one()
    total_orders = sum(by_status.values())
    return {
        "total_orders": total_orders,
        "paid_orders": paid_count,
        "total_revenue": round(float(revenue or 0), 2),
        "average_order_value": round(float(revenue or 0) / paid_count, 2) if paid_count else 0.0,
        "by_status": {s.value: by_status.get(s, 0) for s in OrderStatus},
    }
