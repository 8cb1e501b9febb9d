"""Auth service (JWT, password hashing, password policy, reset tokens)."""
import re
import secrets
from datetime import datetime, timedelta, timezone
import bcrypt
import jwt
from app.config import get_settings
from app.models.user import User

settings = get_settings()

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
PASSWORD_SPECIAL_CHARS = r'!@#$%^&*(),.?":{}|<>'

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


def _pwd_bytes(password: str, max_len: int = 72) -> bytes:
    return password.encode("utf-8")[:max_len]


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_pwd_bytes(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_pwd_bytes(password), bcrypt.gensalt()).decode("utf-8")


def validate_password_strength(password: str) -> list[str]:
    """Return the list of unmet password rules (empty when the password is acceptable)."""
    errors: list[str] = []
    password = password or ""
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password must not exceed {PASSWORD_MAX_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if not any(c in PASSWORD_SPECIAL_CHARS for c in password):
        errors.append("Password must contain at least one special character")
    return errors


def _encode(payload: dict) -> str:
    raw = jwt.encode(
        payload,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return raw if isinstance(raw, str) else raw.decode("utf-8")


def _claims(user: User, token_type: str, expire: datetime) -> dict:
    # PyJWT expects "sub" to be a string
    return {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value,
        "nft_holder": bool(user.nft_holder),
        "wallet_address": user.wallet_address,
        "type": token_type,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": datetime.now(timezone.utc),
        "exp": expire,
    }


def create_access_token(user: User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    return _encode(_claims(user, TOKEN_TYPE_ACCESS, expire))


def create_refresh_token(user: User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=settings.jwt_refresh_token_expire_days)
    # jti keeps two refresh tokens minted in the same second distinct
    payload = _claims(user, TOKEN_TYPE_REFRESH, expire)
    payload["jti"] = secrets.token_hex(8)
    return _encode(payload)


def decode_token_with_error(token: str, expected_type: str = TOKEN_TYPE_ACCESS) -> tuple[dict | None, str | None]:
    """Decode JWT; returns (payload, error_message)."""
    if not token or not isinstance(token, str):
        return None, "empty token"
    token = token.strip()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError as e:
        return None, str(e)
    except jwt.PyJWTError as e:
        return None, str(e)
    if payload.get("type") != expected_type:
        return None, f"expected {expected_type} token"
    return payload, None


def create_password_reset_token() -> tuple[str, datetime]:
    """Random URL-safe token and its expiry."""
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.password_reset_expire_minutes)
    return secrets.token_urlsafe(32), expires_at
