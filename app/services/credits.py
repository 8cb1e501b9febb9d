"""Membership credits: per-cycle allocation, usage, refunds and expiry, with a transaction ledger.

Callers own the commit; every function here only flushes so a credit change and
the booking it pays for land in the same database transaction.
"""
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.models.membership import (
    MembershipPlan, MembershipCredit, CreditTransaction, CreditType, CreditStatus, TransactionType,
)
from app.models.user import User
from app.services.time_utils import utcnow, as_utc

logger = logging.getLogger(__name__)


class InsufficientCreditsError(Exception):
    def __init__(self, credit_type: CreditType, requested: float, available: float):
        self.credit_type = credit_type
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient {credit_type.value} credits: requested {requested:g}, available {available:g}"
        )


def _log_transaction(
    db: Session,
    credit: MembershipCredit,
    transaction_type: TransactionType,
    amount: float,
    description: str,
    booking_id: int | None = None,
    meta: dict | None = None,
) -> CreditTransaction:
    txn = CreditTransaction(
        user_id=credit.user_id,
        membership_credit_id=credit.id,
        booking_id=booking_id,
        transaction_type=transaction_type,
        amount=amount,
        balance_after=credit.remaining_amount,
        description=description,
        meta=meta,
    )
    db.add(txn)
    return txn


def allocate_credits(
    db: Session,
    user: User,
    plan: MembershipPlan,
    cycle_start: datetime,
    cycle_end: datetime,
) -> list[MembershipCredit]:
    """Grant the plan's credits for one billing cycle. Re-running for the same cycle resets the row."""
    allocated: list[MembershipCredit] = []
    for credit_type, amount in plan.credit_allocation().items():
        if amount <= 0:
            continue
        credit = (
            db.query(MembershipCredit)
            .filter(
                MembershipCredit.user_id == user.id,
                MembershipCredit.credit_type == credit_type,
                MembershipCredit.billing_cycle_start == cycle_start,
            )
            .first()
        )
        if credit is None:
            credit = MembershipCredit(
                user_id=user.id,
                credit_type=credit_type,
                billing_cycle_start=cycle_start,
            )
            db.add(credit)
        credit.allocated_amount = float(amount)
        credit.used_amount = 0.0
        credit.remaining_amount = float(amount)
        credit.billing_cycle_end = cycle_end
        credit.status = CreditStatus.active
        db.flush()
        _log_transaction(
            db,
            credit,
            TransactionType.allocation,
            float(amount),
            f"{plan.name} allocation: {amount} {credit_type.value}",
            meta={"plan_id": plan.id},
        )
        allocated.append(credit)
    db.flush()
    logger.info("Allocated %d credit types to user %s for plan %s", len(allocated), user.id, plan.slug)
    return allocated


def get_active_credit(db: Session, user_id: int, credit_type: CreditType) -> MembershipCredit | None:
    """Active balance from the most recent billing cycle."""
    return (
        db.query(MembershipCredit)
        .filter(
            MembershipCredit.user_id == user_id,
            MembershipCredit.credit_type == credit_type,
            MembershipCredit.status == CreditStatus.active,
        )
        .order_by(MembershipCredit.billing_cycle_start.desc())
        .first()
    )


def get_available_amount(db: Session, user_id: int, credit_type: CreditType) -> float:
    credit = get_active_credit(db, user_id, credit_type)
    return float(credit.remaining_amount) if credit else 0.0


def get_credit_balance(db: Session, user_id: int) -> dict[CreditType, MembershipCredit | None]:
    return {ct: get_active_credit(db, user_id, ct) for ct in CreditType}


def deduct_credits(
    db: Session,
    user_id: int,
    credit_type: CreditType,
    amount: float,
    booking_id: int | None = None,
    description: str | None = None,
) -> CreditTransaction:
    credit = get_active_credit(db, user_id, credit_type)
    available = float(credit.remaining_amount) if credit else 0.0
    if credit is None or available < amount:
        raise InsufficientCreditsError(credit_type, amount, available)
    credit.used_amount = float(credit.used_amount) + amount
    credit.remaining_amount = available - amount
    txn = _log_transaction(
        db,
        credit,
        TransactionType.usage,
        -amount,
        description or f"Used {amount:g} {credit_type.value} credits",
        booking_id=booking_id,
    )
    db.flush()
    return txn


def refund_credits(
    db: Session,
    user_id: int,
    credit_type: CreditType,
    amount: float,
    booking_id: int | None = None,
    description: str | None = None,
) -> CreditTransaction | None:
    """Return credits to the active balance. None when the user has no active balance to refund into."""
    credit = get_active_credit(db, user_id, credit_type)
    if credit is None:
        logger.warning("No active %s credits to refund for user %s", credit_type.value, user_id)
        return None
    credit.used_amount = max(0.0, float(credit.used_amount) - amount)
    credit.remaining_amount = float(credit.remaining_amount) + amount
    txn = _log_transaction(
        db,
        credit,
        TransactionType.refund,
        amount,
        description or f"Refunded {amount:g} {credit_type.value} credits",
        booking_id=booking_id,
    )
    db.flush()
    return txn


def expire_credits(db: Session, user_id: int | None = None, now: datetime | None = None) -> int:
    """Expire active balances: all of a user's (cancellation), or every balance whose cycle has ended."""
    now = now or utcnow()
    q = db.query(MembershipCredit).filter(MembershipCredit.status == CreditStatus.active)
    if user_id is not None:
        q = q.filter(MembershipCredit.user_id == user_id)
    expired = 0
    for credit in q.all():
        if user_id is None and as_utc(credit.billing_cycle_end) > now:
            continue
        remaining = float(credit.remaining_amount)
        credit.status = CreditStatus.expired
        credit.remaining_amount = 0.0
        _log_transaction(
            db,
            credit,
            TransactionType.expiration,
            -remaining,
            f"{credit.credit_type.value} credits expired",
        )
        expired += 1
    db.flush()
    return expired


def get_transactions(
    db: Session,
    user_id: int,
    credit_type: CreditType | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[CreditTransaction]:
    q = db.query(CreditTransaction).filter(CreditTransaction.user_id == user_id)
    if credit_type is not None:
        q = q.join(MembershipCredit, CreditTransaction.membership_credit_id == MembershipCredit.id).filter(
            MembershipCredit.credit_type == credit_type
        )
    return q.order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc()).offset(offset).limit(limit).all()


def summarize_transactions(transactions: list[CreditTransaction]) -> dict[str, dict[str, float]]:
    """Per credit type totals; usage is reported as a positive number."""
    summary: dict[str, dict[str, float]] = {}
    for txn in transactions:
        key = txn.credit_type.value if txn.credit_type else "unknown"
        row = summary.setdefault(
            key,
            {"total_allocated": 0.0, "total_used": 0.0, "total_refunded": 0.0, "total_expired": 0.0, "net_balance": 0.0},
        )
        amount = float(txn.amount)
        if txn.transaction_type == TransactionType.allocation:
            row["total_allocated"] += amount
        elif txn.transaction_type == TransactionType.usage:
            row["total_used"] += -amount
        elif txn.transaction_type == TransactionType.refund:
            row["total_refunded"] += amount
        elif txn.transaction_type == TransactionType.expiration:
            row["total_expired"] += -amount
        row["net_balance"] = row["total_allocated"] - row["total_used"] + row["total_refunded"] - row["total_expired"]
    return summary
