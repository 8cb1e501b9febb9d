"""Cafe orders: members place and track orders, staff move them through the kitchen."""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, require_staff, is_staff_or_admin, call_stripe
from app.models.cafe import CafeOrder, OrderStatus
from app.models.user import User
from app.schemas.cafe import (
    OrderCreate,
    OrderCreated,
    OrderResponse,
    OrderListResponse,
    OrderStatusUpdate,
    OrderStats,
)
from app.services import orders as order_service
from app.services import payments
from app.services import realtime
from app.services.audit_log import create_log, ACTION_STATUS_CHANGE, RESOURCE_ORDER
from app.services.notifications import send_order_ready
from app.services.orders import OrderError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderCreated, status_code=201)
def create_order(
    data: OrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Place an order. When Stripe is configured a payment intent is opened for the total."""
    try:
        order = order_service.create_order(db, current_user, data.items, data.special_instructions)
    except OrderError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)

    client_secret = None
    if payments.stripe_configured():
        customer = call_stripe(payments.get_or_create_customer, current_user)
        intent = call_stripe(
            payments.create_payment_intent,
            payments.dollars_to_cents(float(order.total_price)),
            customer.id,
            {"order_id": order.id, "user_id": current_user.id},
            f"Cafe order #{order.id}",
        )
        order.payment_intent_id = intent["id"]
        client_secret = intent["client_secret"]
    db.commit()
    db.refresh(order)
    realtime.publish_order_created(order)
    return OrderCreated(order=order, client_secret=client_secret)


@router.get("", response_model=OrderListResponse)
def list_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    status: OrderStatus | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
):
    """Members see their own orders; staff and admins see every order."""
    user_id = None if is_staff_or_admin(current_user) else current_user.id
    rows, total = order_service.list_orders(db, user_id=user_id, status=status, page=page, limit=limit)
    return OrderListResponse(orders=rows, total=total, page=page, limit=limit)


@router.get("/stats", response_model=OrderStats)
def order_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return order_service.get_order_stats(db)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = db.query(CafeOrder).filter(CafeOrder.id == order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.user_id != current_user.id and not is_staff_or_admin(current_user):
        raise HTTPException(status_code=403, detail="You do not have access to this order")
    return order


@router.patch("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    order = db.query(CafeOrder).filter(CafeOrder.id == order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    try:
        previous = order_service.update_order_status(db, order, data.status)
    except OrderError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    create_log(
        db, ACTION_STATUS_CHANGE, RESOURCE_ORDER, "Order status changed",
        f"Order #{order.id}: {previous.value} -> {order.status.value}",
        resource_id=order.id, actor=current_user, request=request,
        meta={"old": previous.value, "new": order.status.value},
    )
    db.commit()
    db.refresh(order)

    realtime.publish_order_status(order, previous.value)
    if order.status == OrderStatus.ready:
        customer = order.user
        if not send_order_ready(customer.email, customer.full_name, order.id, order.items):
            logger.warning("Order ready email not sent for order %s", order.id)
    return order
