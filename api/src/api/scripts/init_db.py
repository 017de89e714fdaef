"""Seed the database with the default admin user and system settings."""

from __future__ import annotations

import asyncio
import logging
import sys

from iobic.config import get_settings
from iobic.database import close_engine, get_session

from api.services.bootstrap import initialize_database

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    stream=sys.stdout,
)

logger = logging.getLogger("init_db")


async def run() -> dict[str, int]:
    try:
        async with get_session() as session:
            return await initialize_database(session, get_settings())
    finally:
        await close_engine()


def main() -> None:
    try:
        stats = asyncio.run(run())
    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    print(
        "init-db:",
        f"admins_created={stats['admins_created']}",
        f"settings_created={stats['settings_created']}",
    )


if __name__ == "__main__":
    main()
