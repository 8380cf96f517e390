"""FastAPI dependency utilities."""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from taskflow.infrastructure.notifications import (
    RealtimeEventPublisher,
    realtime_event_publisher,
)
from taskflow.infrastructure.security import resolve_user_id

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token", auto_error=False)


def get_current_user_id(token: str | None = Depends(oauth2_scheme)) -> int:
    """Return the id of the user authenticated by the bearer token."""

    try:
        return resolve_user_id(token)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def get_realtime_publisher() -> RealtimeEventPublisher:
    return realtime_event_publisher
