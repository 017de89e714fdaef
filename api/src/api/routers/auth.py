"""Session authentication endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from iobic.exceptions import ConflictError
from iobic.models import User
from iobic.schemas.common import stripped_or_none, validated_email
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_db,
    get_login_lockout,
    get_optional_user,
    get_session_store,
    session_id_from_request,
)
from api.middleware.auth import (
    clear_session_cookies,
    new_csrf_token,
    session_ttl_seconds,
    set_session_cookies,
)
from api.services.accounts import authenticate, create_user, serialize_user
from api.services.auth_lockout import LoginLockout
from api.services.session_store import SessionStore, new_session_id

logger = logging.getLogger(__name__)
router = APIRouter()


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=1, max_length=256)


class RegisterRequest(BaseModel):
    full_name: str = Field(min_length=2, max_length=200, alias="fullName")
    username: str = Field(min_length=3, max_length=150)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=6, max_length=256)

    model_config = {"populate_by_name": True}

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return validated_email(value)

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        trimmed = value.strip()
        if len(trimmed) < 3:
            raise ValueError("Username must be at least 3 characters")
        return trimmed

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        return stripped_or_none(value) or ""


def _client_ip(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


@router.post("/login")
async def login(
    req: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    lockout: LoginLockout = Depends(get_login_lockout),
) -> JSONResponse:
    identifier = f"{_client_ip(request)}:{req.username}"
    blocked, retry_after = lockout.is_blocked(identifier)
    if blocked:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many login attempts. Try again in {retry_after} seconds.",
        )

    user = await authenticate(db, req.username, req.password)
    if user is None:
        lockout.record_failure(identifier)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    lockout.clear(identifier)

    previous = session_id_from_request(request)
    if previous:
        await store.destroy(previous)
    session_id = new_session_id()
    csrf_token = new_csrf_token()
    await store.set(
        session_id, {"user_id": user.id, "csrf_token": csrf_token}, session_ttl_seconds()
    )
    logger.info("User %s logged in", user.username)

    response = JSONResponse({"success": True, "user": serialize_user(user)})
    set_session_cookies(response, request, session_id, csrf_token)
    return response


@router.post("/logout")
async def logout(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> JSONResponse:
    session_id = session_id_from_request(request)
    if session_id:
        await store.destroy(session_id)
    response = JSONResponse({"success": True})
    clear_session_cookies(response)
    return response


@router.get("/me")
async def me(user: User | None = Depends(get_optional_user)) -> JSONResponse:
    if user is None:
        return JSONResponse({"authenticated": False}, status_code=status.HTTP_401_UNAUTHORIZED)
    return JSONResponse({"authenticated": True, "user": serialize_user(user)})


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(req: RegisterRequest, db: AsyncSession = Depends(get_db)):
    try:
        user = await create_user(
            db,
            username=req.username,
            email=req.email,
            password=req.password,
            full_name=req.full_name or None,
            is_admin=False,
        )
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    logger.info("Registered user %s", user.username)
    return {"success": True, "user": serialize_user(user)}
