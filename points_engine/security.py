from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from points_engine.config import settings


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Creates a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decodes a JWT access token."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def token_subject(token: str) -> str | None:
    """Returns the ``sub`` claim of a valid token, or None."""
    payload = decode_access_token(token)
    if not payload or not payload.get("sub"):
        return None
    return str(payload["sub"])
