"""CMS content item endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from iobic.config import get_settings
from iobic.exceptions import ContentValidationError, NotFoundError
from iobic.models import CONTENT_TYPES, User
from iobic.schemas.content import ContentItemCreate, ContentItemUpdate
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_admin
from api.services.content_items import (
    create_content_item,
    delete_content_item,
    get_content_item,
    get_content_items_by_type,
    list_content_items,
    serialize_content_item,
    update_content_item,
)

router = APIRouter()


def _content_validation_failed(exc: ContentValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"message": str(exc), "errors": exc.errors},
    )


@router.get("/content")
async def list_all_content(
    type: str | None = Query(default=None),
    language: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    if type is not None and type not in CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Invalid content type")
    items = await list_content_items(db, content_type=type, language=language)
    return [serialize_content_item(item) for item in items]


@router.get("/content/item/{item_id}")
async def get_item(item_id: int, db: AsyncSession = Depends(get_db)):
    item = await get_content_item(db, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Content item not found")
    return serialize_content_item(item)


@router.get("/content/{content_type}")
async def list_content_by_type(
    content_type: str,
    language: str | None = Query(default=None, max_length=8),
    db: AsyncSession = Depends(get_db),
):
    if content_type not in CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Invalid content type")
    language = (language or "").strip() or get_settings().default_language
    items = await get_content_items_by_type(db, content_type, language)
    return [serialize_content_item(item) for item in items]


@router.post("/content", status_code=status.HTTP_201_CREATED)
async def create_item(
    req: ContentItemCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    item = await create_content_item(db, req)
    return serialize_content_item(item)


@router.put("/content/{item_id}")
async def update_item(
    item_id: int,
    req: ContentItemUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    try:
        item = await update_content_item(db, item_id, req)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Content item not found") from exc
    except ContentValidationError as exc:
        raise _content_validation_failed(exc) from exc
    return serialize_content_item(item)


@router.delete("/content/{item_id}")
async def delete_item(
    item_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    try:
        await delete_content_item(db, item_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Content item not found") from exc
    return {"success": True}
