"""Membership plans, Stripe subscriptions and credit balances."""
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user, get_optional_user, call_stripe
from app.models.membership import MembershipPlan, CreditType
from app.models.user import User, MembershipStatus
from app.schemas.membership import (
    MembershipPlanResponse,
    CreditBalance,
    CreditsResponse,
    MeetingRoomCreditsResponse,
    CreditTransactionResponse,
    CreditTransactionSummary,
    CreditTransactionsResponse,
    SubscribeRequest,
    SubscribeResponse,
    SubscriptionResponse,
    SubscriptionUpdate,
)
from app.services import credits as credit_service
from app.services import payments
from app.services.audit_log import create_log, ACTION_UPDATE, ACTION_STATUS_CHANGE, RESOURCE_MEMBERSHIP

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/memberships", tags=["memberships"])


def plan_response(plan: MembershipPlan, user: User | None) -> MembershipPlanResponse:
    out = MembershipPlanResponse.model_validate(plan)
    out.your_price = float(plan.nft_holder_price if user and user.nft_holder else plan.price)
    return out


def _ts(value) -> datetime | None:
    return datetime.fromtimestamp(int(value), tz=timezone.utc) if value else None


def _client_secret(subscription) -> str | None:
    invoice = subscription.get("latest_invoice")
    if not invoice or isinstance(invoice, str):
        return None
    intent = invoice.get("payment_intent")
    if not intent or isinstance(intent, str):
        return None
    return intent.get("client_secret")


def _active_plan(db: Session, plan_id: int) -> MembershipPlan:
    plan = db.query(MembershipPlan).filter(MembershipPlan.id == plan_id, MembershipPlan.active == True).first()
    if not plan:
        raise HTTPException(status_code=404, detail="Membership plan not found")
    if not plan.stripe_price_id:
        raise HTTPException(status_code=400, detail="This plan is not available for online signup")
    return plan


@router.get("/plans", response_model=list[MembershipPlanResponse])
def list_plans(
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
):
    plans = (
        db.query(MembershipPlan)
        .filter(MembershipPlan.active == True)
        .order_by(MembershipPlan.sort_order, MembershipPlan.price)
        .all()
    )
    return [plan_response(p, current_user) for p in plans]


# Credits

@router.get("/credits", response_model=CreditsResponse)
def get_credits(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    balances = credit_service.get_credit_balance(db, current_user.id)
    credits = []
    for credit_type, credit in balances.items():
        if credit is None:
            credits.append(CreditBalance(credit_type=credit_type, allocated_amount=0, used_amount=0, remaining_amount=0))
            continue
        credits.append(
            CreditBalance(
                credit_type=credit_type,
                allocated_amount=credit.allocated_amount,
                used_amount=credit.used_amount,
                remaining_amount=credit.remaining_amount,
                billing_cycle_start=credit.billing_cycle_start,
                billing_cycle_end=credit.billing_cycle_end,
                status=credit.status,
            )
        )
    return CreditsResponse(
        has_active_membership=current_user.has_active_membership,
        membership_plan=current_user.membership_plan.name if current_user.membership_plan else None,
        credits=credits,
    )


@router.get("/credits/meeting-rooms", response_model=MeetingRoomCreditsResponse)
def get_meeting_room_credits(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    credit = credit_service.get_active_credit(db, current_user.id, CreditType.meeting_room)
    if credit is None:
        return MeetingRoomCreditsResponse(allocated_hours=0, used_hours=0, remaining_hours=0, usage_percent=0)
    allocated = float(credit.allocated_amount)
    used = float(credit.used_amount)
    return MeetingRoomCreditsResponse(
        allocated_hours=allocated,
        used_hours=used,
        remaining_hours=float(credit.remaining_amount),
        billing_cycle_end=credit.billing_cycle_end,
        usage_percent=round(used / allocated * 100, 1) if allocated else 0.0,
    )


@router.get("/credits/transactions", response_model=CreditTransactionsResponse)
def get_credit_transactions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    credit_type: CreditType | None = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    rows = credit_service.get_transactions(db, current_user.id, credit_type, limit, offset)
    summary = credit_service.summarize_transactions(rows)
    return CreditTransactionsResponse(
        transactions=[CreditTransactionResponse.model_validate(r) for r in rows],
        summary={k: CreditTransactionSummary(**v) for k, v in summary.items()},
        limit=limit,
        offset=offset,
    )


# Subscriptions

@router.post("/subscribe", response_model=SubscribeResponse, status_code=201)
def subscribe(
    data: SubscribeRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not payments.stripe_configured():
        raise HTTPException(status_code=503, detail="Payments are not configured. Set STRIPE_SECRET_KEY in .env.")
    if current_user.has_active_membership:
        raise HTTPException(status_code=400, detail="You already have an active membership. Change plans instead.")
    plan = _active_plan(db, data.membership_plan_id)

    customer = call_stripe(payments.get_or_create_customer, current_user)
    subscription = call_stripe(
        payments.create_subscription,
        customer.id,
        plan.stripe_price_id,
        {"user_id": current_user.id, "membership_plan_id": plan.id, "nft_holder": current_user.nft_holder},
    )
    current_user.stripe_subscription_id = subscription["id"]
    create_log(
        db, ACTION_STATUS_CHANGE, RESOURCE_MEMBERSHIP, "Subscription started",
        f"User {current_user.email} started subscription to {plan.name}",
        resource_id=current_user.id, actor=current_user, request=request,
        meta={"plan_id": plan.id, "subscription_id": subscription["id"]},
    )
    db.commit()
    price = float(plan.nft_holder_price if current_user.nft_holder else plan.price)
    return SubscribeResponse(
        subscription_id=subscription["id"],
        client_secret=_client_secret(subscription),
        status=subscription.get("status") or "incomplete",
        plan=plan_response(plan, current_user),
        price=price,
    )


@router.get("/subscription", response_model=SubscriptionResponse)
def get_subscription(
    current_user: User = Depends(get_current_user),
):
    plan = plan_response(current_user.membership_plan, current_user) if current_user.membership_plan else None
    if not current_user.stripe_subscription_id:
        return SubscriptionResponse(has_subscription=False, membership_status=current_user.membership_status, plan=plan)
    if not payments.stripe_configured():
        return SubscriptionResponse(
            has_subscription=True,
            subscription_id=current_user.stripe_subscription_id,
            membership_status=current_user.membership_status,
            plan=plan,
            current_period_start=current_user.membership_start_date,
            current_period_end=current_user.membership_end_date,
        )
    subscription = call_stripe(payments.get_subscription, current_user.stripe_subscription_id)
    return SubscriptionResponse(
        has_subscription=True,
        subscription_id=subscription["id"],
        status=subscription.get("status"),
        membership_status=current_user.membership_status,
        plan=plan,
        current_period_start=_ts(subscription.get("current_period_start")),
        current_period_end=_ts(subscription.get("current_period_end")),
        cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
    )


@router.patch("/subscription", response_model=SubscriptionResponse)
def update_subscription(
    data: SubscriptionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not current_user.stripe_subscription_id:
        raise HTTPException(status_code=404, detail="No subscription found")
    if not payments.stripe_configured():
        raise HTTPException(status_code=503, detail="Payments are not configured. Set STRIPE_SECRET_KEY in .env.")

    subscription = None
    changes = {}
    if data.membership_plan_id is not None and data.membership_plan_id != current_user.membership_plan_id:
        plan = _active_plan(db, data.membership_plan_id)
        subscription = call_stripe(
            payments.update_subscription_plan,
            current_user.stripe_subscription_id,
            plan.stripe_price_id,
            {"user_id": current_user.id, "membership_plan_id": plan.id},
        )
        changes["membership_plan_id"] = {"old": current_user.membership_plan_id, "new": plan.id}
        current_user.membership_plan_id = plan.id
    if data.cancel_at_period_end is not None:
        subscription = call_stripe(
            payments.set_cancel_at_period_end, current_user.stripe_subscription_id, data.cancel_at_period_end
        )
        changes["cancel_at_period_end"] = data.cancel_at_period_end
    if subscription is None:
        subscription = call_stripe(payments.get_subscription, current_user.stripe_subscription_id)

    create_log(
        db, ACTION_UPDATE, RESOURCE_MEMBERSHIP, "Subscription updated",
        f"User {current_user.email} updated their subscription",
        resource_id=current_user.id, actor=current_user, request=request, meta={"changes": changes},
    )
    db.commit()
    db.refresh(current_user)
    return SubscriptionResponse(
        has_subscription=True,
        subscription_id=subscription["id"],
        status=subscription.get("status"),
        membership_status=current_user.membership_status,
        plan=plan_response(current_user.membership_plan, current_user) if current_user.membership_plan else None,
        current_period_start=_ts(subscription.get("current_period_start")),
        current_period_end=_ts(subscription.get("current_period_end")),
        cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
    )


@router.delete("/subscription", response_model=SubscriptionResponse)
def cancel_subscription(
    request: Request,
    immediately: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Cancel at period end by default; immediately=true ends the membership and expires its credits now."""
    if not current_user.stripe_subscription_id:
        raise HTTPException(status_code=404, detail="No subscription found")
    subscription = call_stripe(payments.cancel_subscription, current_user.stripe_subscription_id, immediately)
    if immediately:
        current_user.membership_status = MembershipStatus.cancelled
        credit_service.expire_credits(db, user_id=current_user.id)
    create_log(
        db, ACTION_STATUS_CHANGE, RESOURCE_MEMBERSHIP, "Subscription cancelled",
        f"User {current_user.email} cancelled their subscription" + (" immediately" if immediately else " at period end"),
        resource_id=current_user.id, actor=current_user, request=request, meta={"immediately": immediately},
    )
    db.commit()
    db.refresh(current_user)
    return SubscriptionResponse(
        has_subscription=not immediately,
        subscription_id=subscription["id"],
        status=subscription.get("status"),
        membership_status=current_user.membership_status,
        plan=plan_response(current_user.membership_plan, current_user) if current_user.membership_plan else None,
        current_period_end=_ts(subscription.get("current_period_end")),
        cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
    )
