"""First-run database seeding: default admin and system site settings."""

from __future__ import annotations

import logging

from iobic.config import Settings
from iobic.models import SiteSetting, User
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.accounts import create_user
from api.services.site_settings import upsert_site_setting

logger = logging.getLogger(__name__)

DEFAULT_SITE_SETTINGS: tuple[tuple[str, str, str], ...] = (
    ("site_title", "IOBIC - AI Phone Agent", "Website title"),
    ("site_description", "AI Phone Agent for Small Businesses", "Website meta description"),
    ("contact_email", "contact@iobic.com", "Contact email address"),
    ("contact_phone", "+359 888 123 456", "Contact phone number"),
    ("facebook_url", "https://facebook.com/iobic", "Facebook page URL"),
    ("instagram_url", "https://instagram.com/iobic", "Instagram profile URL"),
    ("default_language", "bg", "Default website language"),
)


async def _count(session: AsyncSession, column) -> int:
    result = await session.execute(select(func.count(column)))
    return int(result.scalar() or 0)


async def initialize_database(session: AsyncSession, settings: Settings) -> dict[str, int]:
    """Seed an empty database. Tables that already hold rows are left alone."""
    stats = {"admins_created": 0, "settings_created": 0}

    if await _count(session, User.id) == 0:
        logger.info("Creating default admin user %s", settings.admin_username)
        await create_user(
            session,
            username=settings.admin_username,
            email=settings.admin_email,
            password=settings.admin_password,
            full_name="Administrator",
            is_admin=True,
        )
        stats["admins_created"] = 1
        if settings.admin_password == "admin123":
            logger.warning("Default admin password in use; change it after first login")
    else:
        logger.info("Users already exist, skipping admin user creation")

    if await _count(session, SiteSetting.id) == 0:
        logger.info("Creating default site settings")
        for key, value, description in DEFAULT_SITE_SETTINGS:
            await upsert_site_setting(session, key, value, description=description, is_system=True)
            stats["settings_created"] += 1
    else:
        logger.info("Settings already exist, skipping default settings creation")

    return stats
