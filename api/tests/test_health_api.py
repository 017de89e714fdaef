"""Tests for health endpoints."""

from __future__ import annotations

from httpx import AsyncClient
from sqlalchemy.exc import OperationalError


async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "iobic-api"}


async def test_ready_when_database_answers(client: AsyncClient, mock_db):
    resp = await client.get("/health/ready")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ready", "service": "iobic-api"}
    assert str(mock_db.execute.await_args.args[0]) == "SELECT 1"


async def test_not_ready_when_database_fails(client: AsyncClient, mock_db):
    mock_db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

    resp = await client.get("/health/ready")

    assert resp.status_code == 503
    body = resp.json()
    assert body["status"] == "not_ready"
    assert body["error"] == "OperationalError"


async def test_not_ready_when_pool_is_unreachable(client: AsyncClient, mock_db):
    mock_db.execute.side_effect = ConnectionRefusedError("db host down")

    resp = await client.get("/health/ready")

    assert resp.status_code == 503
    assert resp.json()["error"] == "ConnectionRefusedError"
