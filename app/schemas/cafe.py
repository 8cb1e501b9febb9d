"""Cafe menu and order schemas."""
import re
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from app.models.booking import PaymentStatus
from app.models.cafe import MenuCategory, OrderStatus

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

MAX_ITEM_QUANTITY = 50


class MenuItemBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255)
    description: str | None = None
    price: float = Field(ge=0)
    category: MenuCategory
    dietary_tags: list[str] = []
    image_url: str | None = Field(default=None, max_length=500)
    orderable: bool = True
    featured: bool = False
    sort_order: int = 0

    @field_validator("slug")
    @classmethod
    def slug_format(cls, v: str) -> str:
        v = v.strip().lower()
        if not _SLUG_RE.match(v):
            raise ValueError("Slug may only contain lowercase letters, digits and hyphens")
        return v


class MenuItemCreate(MenuItemBase):
    pass


class MenuItemUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    category: MenuCategory | None = None
    dietary_tags: list[str] | None = None
    image_url: str | None = Field(default=None, max_length=500)
    orderable: bool | None = None
    featured: bool | None = None
    sort_order: int | None = None


class MenuItemResponse(MenuItemBase):
    id: int
    dietary_tags: list[str] | None = None
    nft_price: float | None = None  # set for authenticated NFT holders

    class Config:
        from_attributes = True


class MenuResponse(BaseModel):
    items: list[MenuItemResponse]
    nft_discount_applied: bool
    discount_rate: float


class OrderItemIn(BaseModel):
    menu_item_id: int
    quantity: int = Field(ge=1, le=MAX_ITEM_QUANTITY)


class OrderCreate(BaseModel):
    items: list[OrderItemIn] = Field(min_length=1)
    special_instructions: str | None = Field(default=None, max_length=500)


class OrderLine(BaseModel):
    menu_item_id: int
    title: str
    quantity: int
    unit_price: float
    subtotal: float


class OrderResponse(BaseModel):
    id: int
    user_id: int
    items: list[OrderLine]
    subtotal: float
    discount_amount: float
    nft_discount_applied: bool
    processing_fee: float
    total_price: float
    status: OrderStatus
    payment_status: PaymentStatus
    payment_intent_id: str | None = None
    special_instructions: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class OrderCreated(BaseModel):
    order: OrderResponse
    client_secret: str | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    total: int
    page: int
    limit: int


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderStats(BaseModel):
    total_orders: int
    paid_orders: int
    total_revenue: float
    average_order_value: float
    by_status: dict[str, int]
