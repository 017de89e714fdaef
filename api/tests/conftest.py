"""API test configuration."""

from __future__ import annotations

import itertools
from unittest.mock import AsyncMock, MagicMock

import pytest
from api.dependencies import get_db
from api.main import create_app
from api.services.session_store import new_session_id
from factories import CSRF_TEST_TOKEN, make_user, result_with, session_headers
from httpx import ASGITransport, AsyncClient
from iobic.config import reset_settings_cache
from iobic.models import User


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def db_objects() -> dict:
    """Rows visible through ``session.get``, keyed by ``(Model, pk)``."""
    return {}


@pytest.fixture
def mock_db(db_objects):
    """Creates a mock AsyncSession with common patterns pre-configured."""
    session = AsyncMock()
    # AsyncSession.add() is synchronous; use MagicMock to avoid un-awaited coroutine warnings.
    session.add = MagicMock()
    session.begin_nested = MagicMock()
    session.begin_nested.return_value.__aexit__.return_value = False
    # Default: execute returns empty result set
    session.execute.return_value = result_with()

    async def _get(model, pk):
        return db_objects.get((model, pk))

    session.get.side_effect = _get

    ids = itertools.count(100)

    async def _flush():
        # Emulate autoincrement primary keys for freshly added rows.
        for call in session.add.call_args_list:
            obj = call.args[0]
            if getattr(obj, "id", None) is None:
                obj.id = next(ids)

    session.flush.side_effect = _flush
    return session


@pytest.fixture
def app(mock_db):
    a = create_app()

    async def _override_db():
        yield mock_db

    a.dependency_overrides[get_db] = _override_db
    return a


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_user(db_objects) -> User:
    user = make_user()
    db_objects[(User, user.id)] = user
    return user


@pytest.fixture
def member_user(db_objects) -> User:
    user = make_user(id=2, username="member", email="member@iobic.com", is_admin=False)
    db_objects[(User, user.id)] = user
    return user


@pytest.fixture
def login_as(app):
    """Open a server-side session for a user and return request headers carrying it."""

    async def _login(user: User) -> dict[str, str]:
        session_id = new_session_id()
        data = {"user_id": user.id, "csrf_token": CSRF_TEST_TOKEN}
        await app.state.session_store.set(session_id, data, 3600)
        return session_headers(session_id)

    return _login


@pytest.fixture
async def admin_headers(login_as, admin_user) -> dict[str, str]:
    return await login_as(admin_user)


@pytest.fixture
async def member_headers(login_as, member_user) -> dict[str, str]:
    return await login_as(member_user)
