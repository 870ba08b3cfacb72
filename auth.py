"""
Single shared-secret admin gate.

A successful login stores a signed JWT (``sub="admin"``, 24 h expiry) in an
HTTP-only cookie. Protected routes depend on ``require_admin`` which
re-validates the signature and expiry on every call.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request, Response
from jose import JWTError, jwt

from config import settings
from exceptions import ConfigError, InvalidCredentialsError, UnauthorizedError
from logging_config import get_logger

logger = get_logger(__name__)

ADMIN_SUBJECT = "admin"


def create_session_token(now: Optional[datetime] = None) -> str:
    issued = now or datetime.now(timezone.utc)
    claims = {
        "sub": ADMIN_SUBJECT,
        "iat": issued,
        "exp": issued + timedelta(seconds=settings.SESSION_MAX_AGE_SECONDS),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.SESSION_ALGORITHM)


def is_valid_session_token(token: Optional[str]) -> bool:
    if not token:
        return False
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.SESSION_ALGORITHM])
    except JWTError:
        return False
    return payload.get("sub") == ADMIN_SUBJECT


def check_password(password: Optional[str]) -> None:
    """Raise unless ``password`` matches the configured admin secret."""
    if not settings.ADMIN_PASSWORD:
        raise ConfigError("Admin password not configured")
    if not password or not isinstance(password, str):
        raise UnauthorizedError("Password is required")
    if not secrets.compare_digest(password.encode(), settings.ADMIN_PASSWORD.encode()):
        logger.warning("Admin login rejected: invalid password")
        raise InvalidCredentialsError()


def set_session_cookie(response: Response) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=create_session_token(),
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path="/")


def is_admin(request: Request) -> bool:
    return is_valid_session_token(request.cookies.get(settings.SESSION_COOKIE_NAME))


def require_admin(request: Request) -> None:
    """FastAPI dependency guarding admin-only routes."""
    if not is_admin(request):
        raise UnauthorizedError("Authentication required")
