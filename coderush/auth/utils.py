"""Password hashing and auth-token helpers."""

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from coderush.config import settings

MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72


def password_too_long(password: str) -> bool:
    return len(password.encode()) > MAX_PASSWORD_BYTES


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Check ``password`` against a stored bcrypt hash."""
    if password_too_long(password):
        return False
    return bcrypt.checkpw(password.encode(), hashed.encode())


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_token(user_id: int) -> str:
    """Issue the signed token stored under ``auth_token``."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str | None) -> int | None:
    """Return the user id from a valid token, or None if missing, expired or forged."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        return int(payload["sub"])
    except (JWTError, KeyError, ValueError):
        return None
