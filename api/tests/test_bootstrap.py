"""Tests for first-run database seeding."""

from __future__ import annotations

from api.services.bootstrap import DEFAULT_SITE_SETTINGS, initialize_database
from factories import added_objects, result_with
from iobic.config import Settings
from iobic.models import SiteSetting, User


def _settings() -> Settings:
    return Settings(ADMIN_USERNAME="owner", ADMIN_PASSWORD="long-secret", ADMIN_EMAIL="owner@iobic.com")


async def test_seeds_empty_database(mock_db):
    stats = await initialize_database(mock_db, _settings())

    assert stats == {"admins_created": 1, "settings_created": len(DEFAULT_SITE_SETTINGS)}
    (admin,) = added_objects(mock_db, User)
    assert admin.username == "owner"
    assert admin.is_admin is True
    assert admin.password_hash != "long-secret"

    settings_rows = added_objects(mock_db, SiteSetting)
    assert {row.key for row in settings_rows} == {key for key, _, _ in DEFAULT_SITE_SETTINGS}
    assert all(row.is_system for row in settings_rows)


async def test_leaves_populated_database_alone(mock_db):
    mock_db.execute.return_value = result_with(scalar=3)

    stats = await initialize_database(mock_db, _settings())

    assert stats == {"admins_created": 0, "settings_created": 0}
    mock_db.add.assert_not_called()
