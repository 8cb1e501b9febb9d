"""Booking request/response schemas."""
import re
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator
from app.models.booking import BookingType, BookingStatus, PaymentStatus, PaymentMethod
from app.schemas.pricing import PricingBreakdown, FinalCharge
from app.schemas.workspace import WorkspaceResponse

_TIME_RE = re.compile(r"([01]\d|2[0-3]):[0-5]\d|24:00")


def _check_time(v: str) -> str:
    v = (v or "").strip()
    if not _TIME_RE.fullmatch(v):
        raise ValueError("Time must be in HH:MM format")
    return v


class HourlyDeskBookingCreate(BaseModel):
    workspace_id: int
    booking_date: date
    start_time: str
    end_time: str
    special_requests: str | None = Field(default=None, max_length=500)

    @field_validator("start_time", "end_time")
    @classmethod
    def time_format(cls, v: str) -> str:
        return _check_time(v)


class MeetingRoomBookingCreate(HourlyDeskBookingCreate):
    attendees: int = Field(default=1, ge=1, le=100)


class DayPassBookingCreate(BaseModel):
    workspace_id: int
    booking_date: date
    special_requests: str | None = Field(default=None, max_length=500)


class BookingExtend(BaseModel):
    new_end_time: str

    @field_validator("new_end_time")
    @classmethod
    def time_format(cls, v: str) -> str:
        return _check_time(v)


class BookingResponse(BaseModel):
    id: int
    user_id: int
    workspace_id: int
    booking_type: BookingType
    booking_date: date
    start_time: str
    end_time: str
    duration_hours: float
    attendees: int
    base_price: float
    subtotal: float
    discount_amount: float
    nft_discount_applied: bool
    credits_used: float
    credits_overage_hours: float
    overage_charge: float
    processing_fee: float
    extension_fees: float = 0.0
    total_price: float
    payment_method: PaymentMethod
    payment_intent_id: str | None = None
    payment_status: PaymentStatus
    status: BookingStatus
    check_in_time: datetime | None = None
    check_out_time: datetime | None = None
    actual_duration_hours: float | None = None
    final_charge: float | None = None
    refund_amount: float | None = None
    confirmation_code: str
    special_requests: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class BookingStatusInfo(BaseModel):
    is_active: bool
    can_check_in: bool
    can_check_out: bool
    can_cancel: bool
    can_extend: bool


class BookingDetail(BookingResponse):
    workspace: WorkspaceResponse | None = None
    status_info: BookingStatusInfo


class BookingCreated(BaseModel):
    booking: BookingResponse
    pricing: PricingBreakdown
    pricing_summary: list[str]
    requires_payment: bool
    credits_remaining: float | None = None


class BookingSummary(BaseModel):
    total: int
    upcoming: int
    active: int
    past: int
    cancelled: int


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    summary: BookingSummary
    upcoming: list[BookingResponse]
    active: list[BookingResponse]
    past: list[BookingResponse]
    cancelled: list[BookingResponse]


class CheckInResponse(BaseModel):
    booking: BookingResponse
    message: str


class CheckOutResponse(BaseModel):
    booking: BookingResponse
    charge: FinalCharge | None = None
    message: str


class ExtendResponse(BaseModel):
    booking: BookingResponse
    additional_hours: float
    additional_charge: float
    message: str


class CancelResponse(BaseModel):
    booking: BookingResponse
    refund_eligible: bool
    refund_amount: float
    credits_refunded: float
    refund_policy: str


class CostEstimate(BaseModel):
    booking_id: int
    booked_hours: float
    elapsed_hours: float
    hours_remaining: float
    is_overtime: bool
    current_charge: FinalCharge
