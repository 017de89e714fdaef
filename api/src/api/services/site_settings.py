"""Site settings repository (unique key -> text value)."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from iobic.exceptions import ConflictError, NotFoundError
from iobic.models import SiteSetting
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def serialize_site_setting(setting: SiteSetting) -> dict[str, Any]:
    return {
        "id": setting.id,
        "key": setting.key,
        "value": setting.value,
        "description": setting.description,
        "isSystem": setting.is_system,
        "createdAt": setting.created_at.isoformat() if setting.created_at else None,
        "updatedAt": setting.updated_at.isoformat() if setting.updated_at else None,
    }


async def list_site_settings(session: AsyncSession) -> list[SiteSetting]:
    result = await session.execute(select(SiteSetting).order_by(SiteSetting.key.asc()))
    return list(result.scalars().all())


async def get_site_setting_by_key(session: AsyncSession, key: str) -> SiteSetting | None:
    result = await session.execute(select(SiteSetting).where(SiteSetting.key == key))
    return result.scalars().first()


async def upsert_site_setting(
    session: AsyncSession,
    key: str,
    value: str,
    description: str | None = None,
    is_system: bool | None = None,
) -> tuple[SiteSetting, bool]:
    """Update the row for ``key`` or insert it; returns ``(setting, created)``.

    The lookup is not transactional. Two writers racing on a new key are
    resolved by the unique constraint on ``site_settings.key``: the loser
    gets ConflictError rather than a silent overwrite.
    """
    now = datetime.now(UTC)
    setting = await get_site_setting_by_key(session, key)
    if setting is not None:
        setting.value = value
        if description is not None:
            setting.description = description
        if is_system is not None:
            setting.is_system = is_system
        setting.updated_at = now
        await session.flush()
        return setting, False

    setting = SiteSetting(
        key=key,
        value=value,
        description=description,
        is_system=bool(is_system),
        created_at=now,
        updated_at=now,
    )
    session.add(setting)
    try:
        await session.flush()
    except IntegrityError as exc:
        logger.warning("Concurrent insert detected for site setting %s", key)
        raise ConflictError(f"Setting '{key}' was created concurrently") from exc
    return setting, True


async def delete_site_setting(session: AsyncSession, key: str) -> None:
    setting = await get_site_setting_by_key(session, key)
    if setting is None:
        raise NotFoundError(f"Setting '{key}' not found")
    await session.delete(setting)
    await session.flush()
