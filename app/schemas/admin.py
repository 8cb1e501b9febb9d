"""Admin dashboard schemas: user management, booking moderation, analytics, audit logs."""
from datetime import date, datetime
from pydantic import BaseModel
from app.models.booking import BookingStatus, PaymentStatus
from app.models.user import UserRole, MembershipStatus
from app.schemas.auth import UserResponse
from app.schemas.booking import BookingResponse


class AdminUserResponse(UserResponse):
    stripe_customer_id: str | None = None
    last_login_at: datetime | None = None
    booking_count: int = 0
    order_count: int = 0


class AdminUserListResponse(BaseModel):
    users: list[AdminUserResponse]
    total: int
    page: int
    limit: int


class AdminUserUpdate(BaseModel):
    role: UserRole | None = None
    membership_plan_id: int | None = None
    membership_status: MembershipStatus | None = None
    nft_holder: bool | None = None
    full_name: str | None = None


class AdminBookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    total: int
    page: int
    limit: int


class AdminBookingUpdate(BaseModel):
    status: BookingStatus | None = None
    payment_status: PaymentStatus | None = None


class RevenueAnalytics(BaseModel):
    start_date: date
    end_date: date
    booking_revenue: float
    cafe_revenue: float
    total_revenue: float
    refunded: float
    nft_discounts_given: float
    by_day: list[dict]


class WorkspaceUtilization(BaseModel):
    workspace_id: int
    workspace_name: str
    bookings: int
    booked_hours: float
    utilization_percent: float


class BookingAnalytics(BaseModel):
    start_date: date
    end_date: date
    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    utilization: list[WorkspaceUtilization]


class UserAnalytics(BaseModel):
    start_date: date
    end_date: date
    total_users: int
    new_users: int
    nft_holders: int
    active_memberships: int
    by_role: dict[str, int]
    memberships_by_plan: dict[str, int]


class AuditLogResponse(BaseModel):
    id: int
    action: str
    resource_type: str
    resource_id: int | None = None
    title: str
    message: str
    meta: dict | None = None
    actor_user_id: int | None = None
    actor_email: str | None = None
    ip_address: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    logs: list[AuditLogResponse]
    total: int
    limit: int
    offset: int
