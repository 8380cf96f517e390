"""Bearer token helpers shared by the HTTP and websocket entry points."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from taskflow.config import get_settings

ALGORITHM = "HS256"


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    settings = get_settings()
    expire = datetime.now(tz=timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    return jwt.encode(
        {"sub": str(user_id), "exp": expire}, settings.secret_key, algorithm=ALGORITHM
    )


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


def resolve_user_id(token: str | None) -> int:
    """Return the user id carried by ``token`` or raise ``ValueError``."""

    if not token:
        raise ValueError("Missing credentials")
    payload = decode_access_token(token)
    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise ValueError("Could not validate credentials") from exc


__all__ = ["ALGORITHM", "create_access_token", "decode_access_token", "resolve_user_id"]
