"""CMS media upload endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from iobic.config import get_settings
from iobic.exceptions import MediaStorageError, NotFoundError
from iobic.models import ContentItem, User
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_admin
from api.services.media_library import (
    UploadTooLargeError,
    check_upload,
    create_media,
    delete_media,
    list_media,
    list_media_for_content_item,
    serialize_media,
    stored_filename,
    write_upload,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/media")
async def list_all_media(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    return [serialize_media(media) for media in await list_media(db)]


@router.post("/media", status_code=status.HTTP_201_CREATED)
async def upload_media(
    file: UploadFile | None = File(default=None),
    content_item_id: int | None = Form(default=None, alias="contentItemId"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    settings = get_settings()
    # One byte past the limit is enough to detect an oversize file.
    data = await file.read(settings.max_upload_bytes + 1)
    mime_type = (file.content_type or "").strip().lower()
    try:
        check_upload(mime_type, len(data), settings.max_upload_bytes)
    except UploadTooLargeError as exc:
        raise HTTPException(status_code=413, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if content_item_id is not None and await db.get(ContentItem, content_item_id) is None:
        raise HTTPException(status_code=404, detail="Content item not found")

    filename = stored_filename(file.filename)
    stored_path = write_upload(settings.upload_dir, filename, data)
    try:
        media = await create_media(
            db,
            filename=filename,
            original_name=file.filename,
            mime_type=mime_type,
            size=len(data),
            content_item_id=content_item_id,
        )
    except Exception:
        stored_path.unlink(missing_ok=True)
        raise
    logger.info("Stored upload %s as %s", file.filename, filename)
    return serialize_media(media)


@router.get("/media/content/{content_item_id}")
async def media_for_content_item(content_item_id: int, db: AsyncSession = Depends(get_db)):
    return [serialize_media(media) for media in await list_media_for_content_item(db, content_item_id)]


@router.delete("/media/{media_id}")
async def remove_media(
    media_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
):
    try:
        await delete_media(db, media_id, get_settings().upload_dir)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Media not found") from exc
    except MediaStorageError as exc:
        logger.error("Media %s kept: %s", media_id, exc)
        raise HTTPException(status_code=500, detail="Failed to delete media file") from exc
    return {"success": True}
