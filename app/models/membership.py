"""Membership plans, per-cycle credit balances and the credit ledger."""
from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean, DateTime, ForeignKey,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, JSONType, enum_values
import enum


class BillingPeriod(str, enum.Enum):
    hourly = "hourly"
    daily = "daily"
    monthly = "monthly"
    yearly = "yearly"


class CreditType(str, enum.Enum):
    meeting_room = "meeting-room"
    printing = "printing"
    guest_pass = "guest-pass"


class CreditStatus(str, enum.Enum):
    active = "active"
    expired = "expired"
    rolled_over = "rolled-over"


class TransactionType(str, enum.Enum):
    allocation = "allocation"
    usage = "usage"
    refund = "refund"
    expiration = "expiration"


class MembershipPlan(Base):
    __tablename__ = "membership_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    nft_holder_price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    billing_period = Column(SQLEnum(BillingPeriod), nullable=False, default=BillingPeriod.monthly)
    features = Column(JSONType, nullable=True)

    meeting_room_credits_hours = Column(Integer, nullable=False, default=0)
    printing_credits = Column(Integer, nullable=False, default=0)
    cafe_discount_percentage = Column(Integer, nullable=False, default=0)
    guest_passes = Column(Integer, nullable=False, default=0)
    access_hours = Column(String(100), nullable=True)
    includes_hot_desk = Column(Boolean, nullable=False, default=False)

    stripe_price_id = Column(String(255), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def credit_allocation(self) -> dict:
        """Amount of each credit type granted per billing cycle."""
        return {
            CreditType.meeting_room: self.meeting_room_credits_hours or 0,
            CreditType.printing: self.printing_credits or 0,
            CreditType.guest_pass: self.guest_passes or 0,
        }


class MembershipCredit(Base):
    __tablename__ = "membership_credits"
    __table_args__ = (
        UniqueConstraint("user_id", "credit_type", "billing_cycle_start", name="uq_membership_credits_cycle"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    credit_type = Column(SQLEnum(CreditType, values_callable=enum_values), nullable=False)

    allocated_amount = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    used_amount = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    remaining_amount = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)

    billing_cycle_start = Column(DateTime(timezone=True), nullable=False)
    billing_cycle_end = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        SQLEnum(CreditStatus, values_callable=enum_values),
        nullable=False,
        default=CreditStatus.active,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class CreditTransaction(Base):
    """Ledger row; amount is negative for usage and expiration."""
    __tablename__ = "credit_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    membership_credit_id = Column(Integer, ForeignKey("membership_credits.id", ondelete="CASCADE"), nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)

    transaction_type = Column(SQLEnum(TransactionType), nullable=False)
    amount = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    balance_after = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    description = Column(String(500), nullable=True)
    meta = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    membership_credit = relationship("MembershipCredit")

    @property
    def credit_type(self) -> CreditType | None:
        return self.membership_credit.credit_type if self.membership_credit else None
