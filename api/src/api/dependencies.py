"""FastAPI dependency injection."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from iobic.config import get_settings
from iobic.database import get_session_factory
from iobic.models import User
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.auth_lockout import LoginLockout
from api.services.session_store import SessionStore


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_login_lockout(request: Request) -> LoginLockout:
    return request.app.state.login_lockout


def session_id_from_request(request: Request) -> str | None:
    raw = request.cookies.get(get_settings().session_cookie_name, "").strip()
    return raw or None


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
) -> User | None:
    session_id = session_id_from_request(request)
    if not session_id:
        return None
    data = await store.get(session_id)
    if not data:
        return None
    user_id = data.get("user_id")
    if not isinstance(user_id, int):
        return None
    user = await db.get(User, user_id)
    if user is None:
        # Account removed while the session was live.
        await store.destroy(session_id)
        return None
    return user


async def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required"
        )
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
