"""Admin user management."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from iobic.exceptions import ConflictError, NotFoundError
from iobic.models import User
from iobic.schemas.common import stripped_or_none, validated_email
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_admin
from api.services.accounts import (
    create_user,
    delete_user,
    get_user,
    list_users,
    serialize_user,
    update_user,
)

logger = logging.getLogger(__name__)
router = APIRouter()


class UserCreateRequest(BaseModel):
    username: str = Field(min_length=3, max_length=150)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=6, max_length=256)
    full_name: str | None = Field(default=None, max_length=200, alias="fullName")
    is_admin: bool = Field(default=False, alias="isAdmin")

    model_config = {"populate_by_name": True}

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return validated_email(value)

    @field_validator("username")
    @classmethod
    def _trim_username(cls, value: str) -> str:
        return value.strip()

    @field_validator("full_name")
    @classmethod
    def _trim_full_name(cls, value: str | None) -> str | None:
        return stripped_or_none(value)


class UserUpdateRequest(BaseModel):
    username: str | None = Field(default=None, min_length=3, max_length=150)
    email: str | None = Field(default=None, min_length=3, max_length=320)
    # Empty password from the edit form means "keep the current one".
    password: str | None = Field(default=None, max_length=256)
    full_name: str | None = Field(default=None, max_length=200, alias="fullName")
    is_admin: bool | None = Field(default=None, alias="isAdmin")

    model_config = {"populate_by_name": True}

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return validated_email(value)

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str | None) -> str | None:
        if not value:
            return None
        if len(value) < 6:
            raise ValueError("Password must be at least 6 characters")
        return value

    @field_validator("full_name")
    @classmethod
    def _trim_full_name(cls, value: str | None) -> str | None:
        return stripped_or_none(value)


@router.get("/users")
async def list_all_users(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return [serialize_user(u) for u in await list_users(db)]


@router.get("/users/{user_id}")
async def get_one_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = await get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return serialize_user(user)


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_one_user(
    req: UserCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    try:
        user = await create_user(
            db,
            username=req.username,
            email=req.email,
            password=req.password,
            full_name=req.full_name,
            is_admin=req.is_admin,
        )
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    logger.info("User %s created by %s", user.username, admin.username)
    return serialize_user(user)


@router.put("/users/{user_id}")
async def update_one_user(
    user_id: int,
    req: UserUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    changes = req.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes provided")
    try:
        user = await update_user(db, user_id, changes)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    logger.info("User %s updated by %s", user.id, admin.username)
    return serialize_user(user)


@router.delete("/users/{user_id}")
async def delete_one_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if admin.id == user_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    try:
        await delete_user(db, user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="User not found") from exc
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    logger.info("User %s deleted by %s", user_id, admin.username)
    return {"success": True}
