"""Site settings endpoints: public reads, admin upserts."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from iobic.exceptions import ConflictError, NotFoundError
from iobic.models import User
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_admin
from api.services.site_settings import (
    delete_site_setting,
    get_site_setting_by_key,
    list_site_settings,
    serialize_site_setting,
    upsert_site_setting,
)

logger = logging.getLogger(__name__)
router = APIRouter()


class SettingRequest(BaseModel):
    key: str = Field(max_length=200)
    value: str
    description: str | None = None
    is_system: bool | None = Field(default=None, alias="isSystem")

    model_config = {"populate_by_name": True}

    @field_validator("key")
    @classmethod
    def _trim_key(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Key and value are required")
        return trimmed

    @field_validator("value")
    @classmethod
    def _require_value(cls, value: str) -> str:
        if value == "":
            raise ValueError("Key and value are required")
        return value


@router.get("/settings")
async def list_settings(db: AsyncSession = Depends(get_db)):
    return [serialize_site_setting(s) for s in await list_site_settings(db)]


@router.get("/settings/{key}")
async def get_setting(key: str, db: AsyncSession = Depends(get_db)):
    setting = await get_site_setting_by_key(db, key)
    if setting is None:
        raise HTTPException(status_code=404, detail="Setting not found")
    return serialize_site_setting(setting)


@router.post("/settings")
async def save_setting(
    req: SettingRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    try:
        setting, created = await upsert_site_setting(
            db,
            req.key,
            req.value,
            description=req.description,
            is_system=req.is_system,
        )
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    logger.info("Setting %s %s by %s", req.key, "created" if created else "updated", user.username)
    return serialize_site_setting(setting)


@router.delete("/settings/{key}")
async def remove_setting(
    key: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    try:
        await delete_site_setting(db, key)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Setting not found") from exc
    logger.info("Setting %s deleted by %s", key, user.username)
    return {"success": True}
