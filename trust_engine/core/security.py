"""JWT utilities."""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from trust_engine.core.config import settings


def create_access_token(subject: str | int, expires_minutes: int = 60, extra: dict[str, Any] | None = None) -> str:
    """Create a JWT access token. The marketplace auth service issues these in production."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(subject),
        "exp": now + timedelta(minutes=expires_minutes),
        "iat": now,
    }
    if extra:
        payload.update(extra)
    return jwt.encode(
        payload,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT. Returns payload or None if invalid."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None
