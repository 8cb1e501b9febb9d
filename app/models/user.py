"""Members, staff and admins."""
from sqlalchemy import Column, Integer, String, Enum as SQLEnum, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class UserRole(str, enum.Enum):
    user = "user"
    staff = "staff"
    admin = "admin"


class MembershipStatus(str, enum.Enum):
    active = "active"
    paused = "paused"
    cancelled = "cancelled"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.user)

    full_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    avatar_url = Column(String(500), nullable=True)

    # Web3: lowercase 0x address; nft_holder is refreshed from the verification cache
    wallet_address = Column(String(42), unique=True, nullable=True, index=True)
    nft_holder = Column(Boolean, default=False, nullable=False)
    nft_verified_at = Column(DateTime(timezone=True), nullable=True)

    membership_plan_id = Column(Integer, ForeignKey("membership_plans.id"), nullable=True)
    membership_status = Column(SQLEnum(MembershipStatus), nullable=True)
    membership_start_date = Column(DateTime(timezone=True), nullable=True)
    membership_end_date = Column(DateTime(timezone=True), nullable=True)

    stripe_customer_id = Column(String(255), nullable=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True, index=True)

    password_reset_token = Column(String(128), nullable=True, index=True)
    password_reset_expires_at = Column(DateTime(timezone=True), nullable=True)

    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    membership_plan = relationship("MembershipPlan")

    @property
    def has_active_membership(self) -> bool:
        return self.membership_plan_id is not None and self.membership_status == MembershipStatus.active
