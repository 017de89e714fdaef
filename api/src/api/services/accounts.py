"""User accounts: lookups, credential checks and admin-guarded mutations."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from iobic.exceptions import ConflictError, NotFoundError
from iobic.models import User
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.auth import hash_password, verify_password

logger = logging.getLogger(__name__)


def serialize_user(user: User) -> dict[str, Any]:
    """Public view of a user; never includes the password hash."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "fullName": user.full_name,
        "isAdmin": bool(user.is_admin),
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }


async def get_user(session: AsyncSession, user_id: int) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    result = await session.execute(select(User).where(User.username == username))
    return result.scalars().first()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalars().first()


async def list_users(session: AsyncSession) -> list[User]:
    result = await session.execute(select(User).order_by(User.id.asc()))
    return list(result.scalars().all())


async def count_admins(session: AsyncSession) -> int:
    """Count admins, holding row locks on them until the transaction ends."""
    result = await session.execute(
        select(User.id).where(User.is_admin.is_(True)).with_for_update()
    )
    return len(result.scalars().all())


async def authenticate(session: AsyncSession, username: str, password: str) -> User | None:
    user = await get_user_by_username(session, username)
    if user is None or not user.password_hash:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def _ensure_unique(
    session: AsyncSession,
    *,
    username: str | None,
    email: str | None,
    exclude_id: int | None = None,
) -> None:
    if username is not None:
        other = await get_user_by_username(session, username)
        if other is not None and other.id != exclude_id:
            raise ConflictError("Username already exists")
    if email is not None:
        other = await get_user_by_email(session, email)
        if other is not None and other.id != exclude_id:
            raise ConflictError("Email already exists")


async def create_user(
    session: AsyncSession,
    *,
    username: str,
    email: str,
    password: str,
    full_name: str | None = None,
    is_admin: bool = False,
) -> User:
    await _ensure_unique(session, username=username, email=email)
    now = datetime.now(UTC)
    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        is_admin=is_admin,
        created_at=now,
        updated_at=now,
    )
    try:
        async with session.begin_nested():
            session.add(user)
            await session.flush()
    except IntegrityError as exc:
        # A concurrent signup took the name or email after the check above.
        await _ensure_unique(session, username=username, email=email)
        raise ConflictError("Username or email already exists") from exc
    logger.info("Created user %s (admin=%s)", user.username, user.is_admin)
    return user


async def update_user(session: AsyncSession, user_id: int, changes: dict[str, Any]) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    username = changes.get("username")
    email = changes.get("email")
    await _ensure_unique(
        session,
        username=username if username and username != user.username else None,
        email=email if email and email != user.email else None,
        exclude_id=user.id,
    )

    if changes.get("is_admin") is False and user.is_admin and await count_admins(session) <= 1:
        raise ConflictError("Cannot remove admin rights from the last admin")

    if username:
        user.username = username
    if email:
        user.email = email
    if "full_name" in changes:
        user.full_name = changes["full_name"]
    if changes.get("is_admin") is not None:
        user.is_admin = bool(changes["is_admin"])
    if changes.get("password"):
        user.password_hash = hash_password(changes["password"])

    user.updated_at = datetime.now(UTC)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise ConflictError("Username or email already exists") from exc
    return user


async def delete_user(session: AsyncSession, user_id: int) -> None:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    if user.is_admin and await count_admins(session) <= 1:
        raise ConflictError("Cannot delete the last admin user")
    await session.delete(user)
    await session.flush()
    logger.info("Deleted user %s", user_id)
