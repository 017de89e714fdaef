"""Media uploads: file storage on disk plus metadata rows."""

from __future__ import annotations

import logging
import re
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from iobic.exceptions import MediaStorageError, NotFoundError
from iobic.models import Media
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES: frozenset[str] = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/svg+xml",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)
PUBLIC_PATH_PREFIX = "/uploads/"
_EXTENSION_SANITIZER = re.compile(r"[^a-z0-9.]+")


class UploadTooLargeError(ValueError):
    pass


def _extension(original_name: str) -> str:
    suffix = Path(original_name or "").suffix.lower()
    suffix = _EXTENSION_SANITIZER.sub("", suffix)
    return suffix[:16] if suffix.startswith(".") else ""


def stored_filename(original_name: str) -> str:
    """Unique on-disk name that keeps the original extension."""
    return f"{uuid.uuid4()}{_extension(original_name)}"


def check_upload(mime_type: str, size: int, max_bytes: int) -> None:
    if mime_type not in ALLOWED_MIME_TYPES:
        raise ValueError("Invalid file type")
    if size <= 0:
        raise ValueError("Uploaded file is empty")
    if size > max_bytes:
        raise UploadTooLargeError(f"File exceeds size limit ({max_bytes // (1024 * 1024)}MB)")


def write_upload(upload_dir: str | Path, filename: str, data: bytes) -> Path:
    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / filename
    target.write_bytes(data)
    return target


def media_file_path(upload_dir: str | Path, media: Media) -> Path:
    return Path(upload_dir) / Path(media.filename).name


def serialize_media(media: Media) -> dict[str, Any]:
    return {
        "id": media.id,
        "filename": media.filename,
        "originalName": media.original_name,
        "mimeType": media.mime_type,
        "size": media.size,
        "path": media.path,
        "contentItemId": media.content_item_id,
        "createdAt": media.created_at.isoformat() if media.created_at else None,
    }


async def create_media(
    session: AsyncSession,
    *,
    filename: str,
    original_name: str,
    mime_type: str,
    size: int,
    content_item_id: int | None = None,
) -> Media:
    media = Media(
        filename=filename,
        original_name=original_name,
        mime_type=mime_type,
        size=size,
        path=f"{PUBLIC_PATH_PREFIX}{filename}",
        content_item_id=content_item_id,
        created_at=datetime.now(UTC),
    )
    session.add(media)
    await session.flush()
    return media


async def get_media(session: AsyncSession, media_id: int) -> Media | None:
    return await session.get(Media, media_id)


async def list_media(session: AsyncSession) -> list[Media]:
    result = await session.execute(select(Media).order_by(Media.created_at.desc(), Media.id.desc()))
    return list(result.scalars().all())


async def list_media_for_content_item(session: AsyncSession, content_item_id: int) -> list[Media]:
    result = await session.execute(
        select(Media).where(Media.content_item_id == content_item_id).order_by(Media.id.asc())
    )
    return list(result.scalars().all())


async def delete_media(session: AsyncSession, media_id: int, upload_dir: str | Path) -> None:
    """Unlink the stored file, then delete the row.

    A file that is already gone does not block the row deletion; any other
    unlink failure leaves the row in place and raises MediaStorageError.
    """
    media = await session.get(Media, media_id)
    if media is None:
        raise NotFoundError(f"Media {media_id} not found")

    file_path = media_file_path(upload_dir, media)
    try:
        file_path.unlink()
    except FileNotFoundError:
        logger.warning("Media file %s already missing; deleting row %s", file_path, media_id)
    except OSError as exc:
        raise MediaStorageError(f"Failed to delete media file {media.filename}") from exc

    await session.delete(media)
    await session.flush()
    logger.info("Deleted media %s (%s)", media_id, media.filename)
