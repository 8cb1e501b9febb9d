"""Membership plan, subscription and credit schemas."""
from datetime import datetime
from pydantic import BaseModel, Field, model_validator
from app.models.membership import BillingPeriod, CreditType, CreditStatus, TransactionType
from app.models.user import MembershipStatus


class MembershipPlanResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    price: float
    nft_holder_price: float
    billing_period: BillingPeriod
    features: list[str] | None = None
    meeting_room_credits_hours: int
    printing_credits: int
    cafe_discount_percentage: int
    guest_passes: int
    access_hours: str | None = None
    includes_hot_desk: bool
    your_price: float | None = None

    class Config:
        from_attributes = True


class CreditBalance(BaseModel):
    credit_type: CreditType
    allocated_amount: float
    used_amount: float
    remaining_amount: float
    billing_cycle_start: datetime | None = None
    billing_cycle_end: datetime | None = None
    status: CreditStatus | None = None


class CreditsResponse(BaseModel):
    has_active_membership: bool
    membership_plan: str | None = None
    credits: list[CreditBalance]


class MeetingRoomCreditsResponse(BaseModel):
    allocated_hours: float
    used_hours: float
    remaining_hours: float
    billing_cycle_end: datetime | None = None
    usage_percent: float


class CreditTransactionResponse(BaseModel):
    id: int
    credit_type: CreditType | None = None
    transaction_type: TransactionType
    amount: float
    balance_after: float
    booking_id: int | None = None
    description: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class CreditTransactionSummary(BaseModel):
    total_allocated: float
    total_used: float
    total_refunded: float
    total_expired: float
    net_balance: float


class CreditTransactionsResponse(BaseModel):
    transactions: list[CreditTransactionResponse]
    summary: dict[str, CreditTransactionSummary]
    limit: int
    offset: int


class SubscribeRequest(BaseModel):
    membership_plan_id: int


class SubscribeResponse(BaseModel):
    subscription_id: str
    client_secret: str | None = None
    status: str
    plan: MembershipPlanResponse
    price: float


class SubscriptionResponse(BaseModel):
    has_subscription: bool
    subscription_id: str | None = None
    status: str | None = None
    membership_status: MembershipStatus | None = None
    plan: MembershipPlanResponse | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False


class SubscriptionUpdate(BaseModel):
    membership_plan_id: int | None = None
    cancel_at_period_end: bool | None = None

    @model_validator(mode="after")
    def one_change(self):
        if self.membership_plan_id is None and self.cancel_at_period_end is None:
            raise ValueError("Provide membership_plan_id or cancel_at_period_end")
        return self


class SubscriptionCancel(BaseModel):
    immediately: bool = Field(default=False)
