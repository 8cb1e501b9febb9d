"""Shared dependencies: DB session, current user, role gates."""
import logging
import stripe
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User, UserRole
from app.services.auth import decode_token_with_error
from app.services.payments import PaymentsNotConfigured

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _user_from_credentials(db: Session, credentials: HTTPAuthorizationCredentials | None) -> User:
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    token_str = (credentials.credentials or "").strip()
    payload, _ = decode_token_with_error(token_str)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def get_current_user(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    return _user_from_credentials(db, credentials)


def get_optional_user(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User | None:
    """Current user when a valid token is sent; anonymous (None) otherwise."""
    if not credentials:
        return None
    try:
        return _user_from_credentials(db, credentials)
    except HTTPException:
        return None


def is_staff_or_admin(user: User) -> bool:
    return user.role in (UserRole.staff, UserRole.admin)


def require_staff(current_user: User = Depends(get_current_user)) -> User:
    if not is_staff_or_admin(current_user):
        raise HTTPException(status_code=403, detail="Staff or admin role required")
    return current_user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.admin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return current_user


def call_stripe(fn, *args, **kwargs):
    """Run a payments-service call, mapping Stripe failures onto HTTP errors (503 unconfigured, 502 upstream)."""
    try:
        return fn(*args, **kwargs)
    except PaymentsNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except stripe.StripeError as e:
        logger.warning("Stripe call %s failed: %s", getattr(fn, "__name__", fn), e)
        raise HTTPException(status_code=502, detail=getattr(e, "user_message", None) or "Payment provider error")
