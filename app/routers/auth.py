"""Registration, login, token refresh, profile and password reset."""
import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.config import get_settings
from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User, UserRole
from app.rate_limit import rate_limit
from app.schemas.auth import (
    UserCreate,
    UserLogin,
    UserUpdate,
    UserResponse,
    Token,
    RefreshRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    MessageResponse,
)
from app.services.auth import (
    get_password_hash,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token_with_error,
    create_password_reset_token,
    TOKEN_TYPE_REFRESH,
)
from app.services.notifications import send_password_reset
from app.services.time_utils import utcnow, as_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, a password reset link has been sent."


def _token_response(user: User) -> Token:
    settings = get_settings()
    return Token(
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=Token, status_code=201, dependencies=[Depends(rate_limit("auth"))])
def register(data: UserCreate, db: Session = Depends(get_db)):
    email = data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="An account with this email already exists")
    user = User(
        email=email,
        hashed_password=get_password_hash(data.password),
        role=UserRole.user,
        full_name=data.full_name.strip(),
        phone=data.phone,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="An account with this email already exists")
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return _token_response(user)


@router.post("/login", response_model=Token, dependencies=[Depends(rate_limit("auth"))])
def login(data: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email.lower()).first()
    if not user or not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    user.last_login_at = utcnow()
    db.commit()
    db.refresh(user)
    return _token_response(user)


@router.post("/logout", response_model=MessageResponse)
def logout(current_user: User = Depends(get_current_user)):
    # Tokens are stateless; the client discards them
    return MessageResponse(message="Logged out successfully")


@router.post("/refresh", response_model=Token, dependencies=[Depends(rate_limit("auth"))])
def refresh(data: RefreshRequest, db: Session = Depends(get_db)):
    payload, _ = decode_token_with_error(data.refresh_token, TOKEN_TYPE_REFRESH)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return _token_response(user)


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=UserResponse)
def update_me(
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)
    db.commit()
    db.refresh(current_user)
    return current_user


@router.post("/forgot-password", response_model=MessageResponse, dependencies=[Depends(rate_limit("auth"))])
def forgot_password(data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """Always answers with the same message so the endpoint cannot be used to probe for accounts."""
    user = db.query(User).filter(User.email == data.email.lower()).first()
    if user:
        token, expires_at = create_password_reset_token()
        user.password_reset_token = token
        user.password_reset_expires_at = expires_at
        db.commit()
        if not send_password_reset(user.email, user.full_name, token):
            logger.warning("Password reset email not sent for user %s", user.id)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse, dependencies=[Depends(rate_limit("auth"))])
def reset_password(data: ResetPasswordRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.password_reset_token == data.token).first()
    if not user or not user.password_reset_expires_at or as_utc(user.password_reset_expires_at) < utcnow():
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    user.hashed_password = get_password_hash(data.password)
    user.password_reset_token = None
    user.password_reset_expires_at = None
    db.commit()
    return MessageResponse(message="Password has been reset successfully")
