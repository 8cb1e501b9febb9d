"""Workspace bookings with pricing snapshot and check-in/out tracking."""
from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean, Date, DateTime, ForeignKey, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, enum_values
import enum


class BookingType(str, enum.Enum):
    hourly_desk = "hourly-desk"
    meeting_room = "meeting-room"
    day_pass = "day-pass"


class BookingStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"


class PaymentStatus(str, enum.Enum):
    pending = "pending"
    paid = "paid"
    refunded = "refunded"


class PaymentMethod(str, enum.Enum):
    card = "card"
    credits = "credits"
    membership = "membership"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), nullable=False, index=True)

    booking_type = Column(SQLEnum(BookingType, values_callable=enum_values), nullable=False)
    booking_date = Column(Date, nullable=False, index=True)
    # "HH:MM", 24h clock
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    duration_hours = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    attendees = Column(Integer, nullable=False, default=1)

    base_price = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    subtotal = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    nft_discount_applied = Column(Boolean, nullable=False, default=False)
    credits_used = Column(Numeric(5, 2, asdecimal=False), nullable=False, default=0)
    credits_overage_hours = Column(Numeric(5, 2, asdecimal=False), nullable=False, default=0)
    overage_charge = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    processing_fee = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    # Fees on later extensions; processing_fee stays the one charged at booking time
    extension_fees = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    total_price = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)

    payment_method = Column(SQLEnum(PaymentMethod), nullable=False, default=PaymentMethod.card)
    payment_intent_id = Column(String(255), nullable=True, index=True)
    payment_status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.pending)
    status = Column(SQLEnum(BookingStatus), nullable=False, default=BookingStatus.pending, index=True)

    check_in_time = Column(DateTime(timezone=True), nullable=True)
    check_out_time = Column(DateTime(timezone=True), nullable=True)
    actual_duration_hours = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    final_charge = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    refund_amount = Column(Numeric(10, 2, asdecimal=False), nullable=True)

    confirmation_code = Column(String(8), unique=True, nullable=False, index=True)
    special_requests = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    workspace = relationship("Workspace")
    user = relationship("User")

    @property
    def is_active(self) -> bool:
        """Checked in and not yet checked out."""
        return self.check_in_time is not None and self.check_out_time is None

    @property
    def fees_charged(self) -> float:
        return float(self.processing_fee or 0) + float(self.extension_fees or 0)
