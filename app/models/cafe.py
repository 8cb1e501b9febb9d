"""Cafe menu items and orders."""
from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean, DateTime, ForeignKey, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, JSONType
from app.models.booking import PaymentStatus
import enum


class MenuCategory(str, enum.Enum):
    coffee = "coffee"
    tea = "tea"
    pastries = "pastries"
    meals = "meals"


class OrderStatus(str, enum.Enum):
    pending = "pending"
    preparing = "preparing"
    ready = "ready"
    completed = "completed"
    cancelled = "cancelled"


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    category = Column(SQLEnum(MenuCategory), nullable=False, index=True)
    dietary_tags = Column(JSONType, nullable=True)
    image_url = Column(String(500), nullable=True)
    orderable = Column(Boolean, nullable=False, default=True)
    featured = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class CafeOrder(Base):
    __tablename__ = "cafe_orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # [{menu_item_id, title, quantity, unit_price, subtotal}] snapshot at order time
    items = Column(JSONType, nullable=False)
    subtotal = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    discount_amount = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    nft_discount_applied = Column(Boolean, nullable=False, default=False)
    processing_fee = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    total_price = Column(Numeric(10, 2, asdecimal=False), nullable=False)

    status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.pending, index=True)
    payment_intent_id = Column(String(255), nullable=True, index=True)
    payment_status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.pending)
    special_instructions = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User")
