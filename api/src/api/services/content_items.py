"""Content item repository."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from iobic.exceptions import NotFoundError
from iobic.models import ContentItem, Media
from iobic.schemas.content import ContentItemCreate, ContentItemUpdate, validate_content
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def serialize_content_item(item: ContentItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "title": item.title,
        "type": item.type,
        "content": item.content,
        "language": item.language,
        "position": item.position,
        "isActive": item.is_active,
        "createdAt": item.created_at.isoformat() if item.created_at else None,
        "updatedAt": item.updated_at.isoformat() if item.updated_at else None,
    }


async def get_content_items_by_type(
    session: AsyncSession, content_type: str, language: str
) -> list[ContentItem]:
    """Active items of one type and language, ascending by position."""
    result = await session.execute(
        select(ContentItem)
        .where(
            ContentItem.type == content_type,
            ContentItem.language == language,
            ContentItem.is_active.is_(True),
        )
        .order_by(ContentItem.position.asc(), ContentItem.id.asc())
    )
    return list(result.scalars().all())


async def list_content_items(
    session: AsyncSession,
    *,
    content_type: str | None = None,
    language: str | None = None,
) -> list[ContentItem]:
    query = select(ContentItem)
    if content_type:
        query = query.where(ContentItem.type == content_type)
    if language:
        query = query.where(ContentItem.language == language)
    query = query.order_by(
        ContentItem.type.asc(),
        ContentItem.language.asc(),
        ContentItem.position.asc(),
        ContentItem.id.asc(),
    )
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_content_item(session: AsyncSession, item_id: int) -> ContentItem | None:
    return await session.get(ContentItem, item_id)


async def create_content_item(session: AsyncSession, payload: ContentItemCreate) -> ContentItem:
    now = datetime.now(UTC)
    item = ContentItem(**payload.to_row_values(), created_at=now, updated_at=now)
    session.add(item)
    await session.flush()
    logger.info("Created %s content item %s (%s)", item.type, item.id, item.language)
    return item


async def update_content_item(
    session: AsyncSession, item_id: int, changes: ContentItemUpdate
) -> ContentItem:
    item = await session.get(ContentItem, item_id)
    if item is None:
        raise NotFoundError(f"Content item {item_id} not found")

    data = changes.model_dump(exclude_unset=True)
    next_type = data.get("type") or item.type
    if next_type != item.type or data.get("content") is not None:
        next_content = data["content"] if data.get("content") is not None else item.content
        item.content = validate_content(next_type, next_content)
        item.type = next_type

    for field in ("title", "language", "position", "is_active"):
        value = data.get(field)
        if value is not None:
            setattr(item, field, value)

    item.updated_at = datetime.now(UTC)
    await session.flush()
    return item


async def delete_content_item(session: AsyncSession, item_id: int) -> None:
    item = await session.get(ContentItem, item_id)
    if item is None:
        raise NotFoundError(f"Content item {item_id} not found")

    # Media keeps a weak reference: clear it, never cascade.
    await session.execute(
        update(Media).where(Media.content_item_id == item_id).values(content_item_id=None)
    )
    await session.delete(item)
    await session.flush()
    logger.info("Deleted content item %s", item_id)
