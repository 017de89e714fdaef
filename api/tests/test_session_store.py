"""Tests for server-side session stores."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest
from api.services.session_store import (
    MemorySessionStore,
    RedisSessionStore,
    build_session_store,
    new_session_id,
)
from iobic.config import Settings


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class TestMemorySessionStore:
    async def test_set_then_get(self):
        store = MemorySessionStore()
        await store.set("sid", {"user_id": 1}, 60)
        assert await store.get("sid") == {"user_id": 1}

    async def test_returned_data_is_a_copy(self):
        store = MemorySessionStore()
        await store.set("sid", {"user_id": 1}, 60)
        data = await store.get("sid")
        data["user_id"] = 99
        assert await store.get("sid") == {"user_id": 1}

    async def test_expires_after_ttl(self):
        clock = FakeClock()
        store = MemorySessionStore(clock=clock)
        await store.set("sid", {"user_id": 1}, 60)

        clock.now += 59
        assert await store.get("sid") == {"user_id": 1}
        clock.now += 1
        assert await store.get("sid") is None
        assert len(store) == 0

    async def test_destroy_is_idempotent(self):
        store = MemorySessionStore()
        await store.set("sid", {"user_id": 1}, 60)
        await store.destroy("sid")
        await store.destroy("sid")
        assert await store.get("sid") is None

    async def test_unknown_session(self):
        assert await MemorySessionStore().get("missing") is None


class TestRedisSessionStore:
    async def test_values_are_json_with_ttl(self):
        client = AsyncMock()
        store = RedisSessionStore("redis://localhost:6379/0")
        with patch.object(store, "_get_client", return_value=client):
            await store.set("sid", {"user_id": 4}, 120)
        client.set.assert_awaited_once_with(
            "iobic:session:sid", json.dumps({"user_id": 4}), ex=120
        )

    async def test_get_decodes_payload(self):
        client = AsyncMock()
        client.get.return_value = '{"user_id": 4}'
        store = RedisSessionStore("redis://localhost:6379/0")
        with patch.object(store, "_get_client", return_value=client):
            assert await store.get("sid") == {"user_id": 4}
        client.get.assert_awaited_once_with("iobic:session:sid")

    async def test_garbage_payload_is_discarded(self):
        client = AsyncMock()
        client.get.return_value = "not json"
        store = RedisSessionStore("redis://localhost:6379/0")
        with patch.object(store, "_get_client", return_value=client):
            assert await store.get("sid") is None
        client.delete.assert_awaited_once_with("iobic:session:sid")


class TestBuildSessionStore:
    def test_memory_backend(self):
        store = build_session_store(Settings(SESSION_BACKEND="memory"))
        assert isinstance(store, MemorySessionStore)

    def test_redis_backend(self):
        store = build_session_store(Settings(SESSION_BACKEND="redis"))
        assert isinstance(store, RedisSessionStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="SESSION_BACKEND"):
            build_session_store(Settings(SESSION_BACKEND="memcached"))


def test_session_ids_are_unique_and_long():
    ids = {new_session_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(sid) >= 40 for sid in ids)
