"""Tests for session authentication endpoints."""

from __future__ import annotations

from factories import (
    TEST_PASSWORD,
    added_objects,
    cookie_value,
    make_user,
    result_with,
    session_headers,
    session_id_from_headers,
)
from httpx import AsyncClient
from iobic.models import User
from sqlalchemy.exc import IntegrityError


class TestLogin:
    async def test_login_success_opens_session(self, client: AsyncClient, mock_db, admin_user, app):
        mock_db.execute.return_value = result_with(first=admin_user)

        resp = await client.post(
            "/api/auth/login", json={"username": "admin", "password": TEST_PASSWORD}
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["user"]["username"] == "admin"
        assert body["user"]["isAdmin"] is True
        assert "password" not in body["user"]
        assert "passwordHash" not in body["user"]

        session_id = cookie_value(resp, "iobic_session")
        assert session_id
        csrf_token = cookie_value(resp, "iobic_csrf_token")
        assert csrf_token
        assert await app.state.session_store.get(session_id) == {
            "user_id": admin_user.id,
            "csrf_token": csrf_token,
        }
        assert "httponly" in resp.headers.get_list("set-cookie")[0].lower()

    async def test_login_wrong_password(self, client: AsyncClient, mock_db, admin_user):
        mock_db.execute.return_value = result_with(first=admin_user)

        resp = await client.post("/api/auth/login", json={"username": "admin", "password": "nope"})

        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid credentials"
        assert cookie_value(resp, "iobic_session") is None

    async def test_login_unknown_user(self, client: AsyncClient):
        resp = await client.post("/api/auth/login", json={"username": "ghost", "password": "x"})
        assert resp.status_code == 401

    async def test_login_missing_fields_is_400(self, client: AsyncClient):
        resp = await client.post("/api/auth/login", json={"username": "admin"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid request data"

    async def test_repeated_failures_lock_out(self, client: AsyncClient, mock_db, admin_user, app):
        mock_db.execute.return_value = result_with(first=admin_user)
        for _ in range(app.state.login_lockout.threshold):
            resp = await client.post(
                "/api/auth/login", json={"username": "admin", "password": "wrong"}
            )
            assert resp.status_code == 401

        resp = await client.post(
            "/api/auth/login", json={"username": "admin", "password": TEST_PASSWORD}
        )
        assert resp.status_code == 429
        assert "Too many login attempts" in resp.json()["detail"]

    async def test_login_replaces_previous_session(
        self, client: AsyncClient, mock_db, admin_user, app, login_as
    ):
        old_headers = await login_as(admin_user)
        old_session_id = session_id_from_headers(old_headers)
        mock_db.execute.return_value = result_with(first=admin_user)

        resp = await client.post(
            "/api/auth/login",
            json={"username": "admin", "password": TEST_PASSWORD},
            headers={"Cookie": old_headers["Cookie"]},
        )

        assert resp.status_code == 200
        assert await app.state.session_store.get(old_session_id) is None
        assert cookie_value(resp, "iobic_session") != old_session_id


class TestSessionLifecycle:
    async def test_me_without_session(self, client: AsyncClient):
        resp = await client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json() == {"authenticated": False}

    async def test_me_with_session(self, client: AsyncClient, admin_headers):
        resp = await client.get("/api/auth/me", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["authenticated"] is True
        assert body["user"]["email"] == "admin@iobic.com"
        assert "password" not in body["user"]

    async def test_me_with_unknown_session_id(self, client: AsyncClient):
        resp = await client.get("/api/auth/me", headers=session_headers("not-a-session"))
        assert resp.status_code == 401

    async def test_session_for_deleted_user_is_dropped(self, client: AsyncClient, app, login_as):
        ghost = make_user(id=77, username="ghost", email="ghost@iobic.com")
        headers = await login_as(ghost)
        session_id = session_id_from_headers(headers)

        resp = await client.get("/api/auth/me", headers=headers)

        assert resp.status_code == 401
        assert await app.state.session_store.get(session_id) is None

    async def test_login_then_me_then_logout(self, client: AsyncClient, mock_db, admin_user):
        mock_db.execute.return_value = result_with(first=admin_user)
        login = await client.post(
            "/api/auth/login", json={"username": "admin", "password": TEST_PASSWORD}
        )
        csrf_token = cookie_value(login, "iobic_csrf_token")
        headers = {
            "Cookie": (
                f"iobic_session={cookie_value(login, 'iobic_session')}; "
                f"iobic_csrf_token={csrf_token}"
            ),
            "x-csrf-token": csrf_token,
        }

        me = await client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json()["user"]["username"] == "admin"

        logout = await client.post("/api/auth/logout", headers=headers)
        assert logout.status_code == 200
        assert logout.json() == {"success": True}

        after = await client.get("/api/auth/me", headers=headers)
        assert after.status_code == 401

    async def test_logout_without_session_succeeds(self, client: AsyncClient):
        resp = await client.post("/api/auth/logout")
        assert resp.status_code == 200
        assert resp.json() == {"success": True}

    async def test_logout_twice_succeeds(self, client: AsyncClient, admin_headers):
        first = await client.post("/api/auth/logout", headers=admin_headers)
        second = await client.post("/api/auth/logout", headers=admin_headers)
        assert first.status_code == 200
        assert second.status_code == 200


class TestRegister:
    async def test_register_creates_non_admin(self, client: AsyncClient, mock_db):
        resp = await client.post(
            "/api/auth/register",
            json={
                "fullName": "Jane Doe",
                "username": "jane",
                "email": "Jane@Example.com",
                "password": "secret1",
            },
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["user"]["isAdmin"] is False
        assert body["user"]["email"] == "jane@example.com"
        assert "password" not in body["user"]

        (created,) = added_objects(mock_db, User)
        assert created.is_admin is False
        assert created.password_hash != "secret1"
        assert created.password_hash.startswith("$2")

    async def test_register_duplicate_username(self, client: AsyncClient, mock_db, member_user):
        mock_db.execute.return_value = result_with(first=member_user)

        resp = await client.post(
            "/api/auth/register",
            json={
                "fullName": "Other",
                "username": "member",
                "email": "other@example.com",
                "password": "secret1",
            },
        )

        assert resp.status_code == 409
        assert resp.json()["detail"] == "Username already exists"
        mock_db.add.assert_not_called()

    async def test_register_duplicate_email(self, client: AsyncClient, mock_db, member_user):
        mock_db.execute.side_effect = [result_with(), result_with(first=member_user)]

        resp = await client.post(
            "/api/auth/register",
            json={
                "fullName": "Other",
                "username": "newname",
                "email": "member@iobic.com",
                "password": "secret1",
            },
        )

        assert resp.status_code == 409
        assert resp.json()["detail"] == "Email already exists"

    async def test_register_short_password(self, client: AsyncClient, mock_db):
        resp = await client.post(
            "/api/auth/register",
            json={"fullName": "Jane", "username": "jane", "email": "j@example.com", "password": "123"},
        )
        assert resp.status_code == 400
        mock_db.add.assert_not_called()

    async def test_register_invalid_email(self, client: AsyncClient):
        resp = await client.post(
            "/api/auth/register",
            json={"fullName": "Jane", "username": "jane", "email": "not-an-email", "password": "secret1"},
        )
        assert resp.status_code == 400

    async def test_register_loses_race_for_username(self, client: AsyncClient, mock_db, member_user):
        # Both pre-insert lookups miss; the unique constraint rejects the insert.
        mock_db.execute.side_effect = [result_with(), result_with(), result_with(first=member_user)]
        mock_db.flush.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

        resp = await client.post(
            "/api/auth/register",
            json={
                "fullName": "Late Comer",
                "username": "member",
                "email": "late@example.com",
                "password": "secret1",
            },
        )

        assert resp.status_code == 409
        assert resp.json()["detail"] == "Username already exists"
        mock_db.begin_nested.assert_called_once()
