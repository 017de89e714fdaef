"""Password hashing and session cookie helpers."""

from __future__ import annotations

import secrets

import bcrypt
from fastapi import Request
from fastapi.responses import JSONResponse
from iobic.config import get_settings

CSRF_COOKIE_NAME = "iobic_csrf_token"
CSRF_HEADER_NAME = "x-csrf-token"
SESSION_COOKIE_PATH = "/"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # Malformed stored hash; treat as a mismatch.
        return False


def session_ttl_seconds() -> int:
    return get_settings().session_ttl_minutes * 60


def _cookie_secure(request: Request) -> bool:
    if request.url.scheme == "https":
        return True
    return get_settings().site_url.lower().startswith("https://")


def new_csrf_token() -> str:
    return secrets.token_urlsafe(32)


def set_session_cookies(
    response: JSONResponse, request: Request, session_id: str, csrf_token: str
) -> None:
    """Attach the HttpOnly session cookie and the readable copy of its CSRF token."""
    settings = get_settings()
    secure = _cookie_secure(request)
    max_age = session_ttl_seconds()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        httponly=True,
        secure=secure,
        samesite="lax",
        max_age=max_age,
        path=SESSION_COOKIE_PATH,
    )
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=csrf_token,
        httponly=False,
        secure=secure,
        samesite="lax",
        max_age=max_age,
        path=SESSION_COOKIE_PATH,
    )


def clear_session_cookies(response: JSONResponse) -> None:
    response.delete_cookie(key=get_settings().session_cookie_name, path=SESSION_COOKIE_PATH)
    response.delete_cookie(key=CSRF_COOKIE_NAME, path=SESSION_COOKIE_PATH)
