"""Auth schemas."""
import re
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from app.models.user import UserRole, MembershipStatus
from app.services.auth import validate_password_strength
from app.services.nft_verification import is_valid_wallet_address

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15


def _check_password(v: str) -> str:
    errors = validate_password_strength(v)
    if errors:
        raise ValueError("; ".join(errors))
    return v


def _check_phone(v: str | None) -> str | None:
    if v is None or not v.strip():
        return None
    digits = re.sub(r"\D", "", v)
    if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
        raise ValueError(f"Phone number must have {PHONE_MIN_DIGITS}-{PHONE_MAX_DIGITS} digits")
    return v.strip()


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    confirm_password: str | None = None
    full_name: str = Field(min_length=1, max_length=255)
    phone: str | None = None

    @field_validator("password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: str | None) -> str | None:
        return _check_phone(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = None
    avatar_url: str | None = Field(default=None, max_length=500)

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: str | None) -> str | None:
        return _check_phone(v)


class UserResponse(BaseModel):
    id: int
    email: str
    role: UserRole
    full_name: str | None = None
    phone: str | None = None
    avatar_url: str | None = None
    wallet_address: str | None = None
    nft_holder: bool = False
    membership_plan_id: int | None = None
    membership_status: MembershipStatus | None = None
    membership_end_date: datetime | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserResponse


class RefreshRequest(BaseModel):
    refresh_token: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str

    @field_validator("password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        return _check_password(v)


class MessageResponse(BaseModel):
    message: str


class WalletConnectRequest(BaseModel):
    wallet_address: str

    @field_validator("wallet_address")
    @classmethod
    def wallet_format(cls, v: str) -> str:
        v = (v or "").strip()
        if not is_valid_wallet_address(v):
            raise ValueError("Invalid wallet address format")
        return v.lower()


class VerifyNftRequest(BaseModel):
    force_refresh: bool = False


class NftStatusResponse(BaseModel):
    wallet_address: str
    nft_holder: bool
    nft_balance: int
    verified_at: datetime
    expires_at: datetime
    cached: bool
