"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from trust_engine.core.errors import ModerationError
from trust_engine.core.security import decode_access_token
from trust_engine.db.session import get_db
from trust_engine.models.user import User
from trust_engine.services.engine import ModerationEngine, build_sql_engine

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def user_id_from_token(token: str) -> int | None:
    """Validate JWT and return the user id in ``sub``, or None."""
    payload = decode_access_token(token)
    if not payload or "sub" not in payload:
        return None
    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        return None


def get_current_user(
    db: Annotated[Session, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> User:
    """Require authenticated user. Raises 401 if not authenticated."""
    if not credentials:
        raise _unauthorized("Not authenticated")
    user_id = user_id_from_token(credentials.credentials)
    if user_id is None:
        raise _unauthorized("Invalid or expired token")
    user = db.get(User, user_id)
    if not user:
        raise _unauthorized("User not found")
    return user


def require_admin(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    """Require current user to be a moderator."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


def get_engine(db: Annotated[Session, Depends(get_db)]) -> ModerationEngine:
    return build_sql_engine(db)


def to_http(exc: ModerationError) -> HTTPException:
    """Translate a moderation outcome into the matching HTTP error."""
    return HTTPException(status_code=exc.status_code, detail=exc.message)
