"""Payment intent and refund schemas."""
from pydantic import BaseModel, Field
from app.models.booking import PaymentStatus


class CreatePaymentIntentRequest(BaseModel):
    booking_id: int


class PaymentIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str
    amount: float
    currency: str


class RefundRequest(BaseModel):
    booking_id: int
    amount: float | None = Field(default=None, gt=0)
    reason: str | None = Field(default=None, max_length=255)


class RefundResponse(BaseModel):
    refund_id: str
    booking_id: int
    amount: float
    status: str
    payment_status: PaymentStatus
