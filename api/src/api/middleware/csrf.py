"""CSRF protection for cookie-authenticated unsafe requests.

The token is minted at login and stored with the server-side session. The
browser receives a readable copy in a cookie and must echo it back in the
``X-CSRF-Token`` header; the header is checked against the session, so a
cookie planted by a sibling origin cannot satisfy the check.
"""

from __future__ import annotations

import logging
import secrets
from urllib.parse import urlparse

from fastapi import Request, status
from fastapi.responses import JSONResponse
from iobic.config import get_settings
from starlette.middleware.base import BaseHTTPMiddleware

from api.dependencies import session_id_from_request
from api.middleware.auth import CSRF_HEADER_NAME

logger = logging.getLogger(__name__)

UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
# Login replaces whatever session cookie the browser still carries.
EXEMPT_PATHS = frozenset({"/api/auth/login"})


def _origin(url: str) -> str | None:
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}".lower()


def trusted_origins() -> set[str]:
    settings = get_settings()
    candidates = (settings.site_url, settings.admin_url, settings.api_url)
    return {origin for origin in map(_origin, candidates) if origin}


def _sender_origin(request: Request) -> str | None:
    for header in ("origin", "referer"):
        value = request.headers.get(header, "").strip()
        if value:
            return _origin(value)
    return None


def _forbidden(detail: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": detail})


class CSRFMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.method.upper() not in UNSAFE_METHODS or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        session_id = session_id_from_request(request)
        if session_id is None:
            return await call_next(request)

        sender = _sender_origin(request)
        if sender is not None and sender not in trusted_origins():
            logger.warning("Rejected %s %s from origin %s", request.method, request.url.path, sender)
            return _forbidden("Cross-site request origin is not allowed")

        data = await request.app.state.session_store.get(session_id)
        if data is None:
            # Expired or unknown session: the request carries no authority.
            return await call_next(request)

        expected = data.get("csrf_token") or ""
        supplied = request.headers.get(CSRF_HEADER_NAME, "").strip()
        if not (expected and supplied) or not secrets.compare_digest(
            expected.encode(), supplied.encode()
        ):
            return _forbidden("Missing or invalid CSRF token")

        return await call_next(request)
