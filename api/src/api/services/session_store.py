"""Server-side session storage.

Sessions are opaque random ids carried in a cookie; the data they point to
lives in a ``SessionStore``. Every store exposes the same three coroutines
(``get``/``set``/``destroy``) so the backend can be swapped per deployment.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from collections.abc import Callable
from typing import Any, Protocol

from iobic.config import Settings

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(Protocol):
    async def get(self, session_id: str) -> dict[str, Any] | None: ...

    async def set(self, session_id: str, data: dict[str, Any], ttl_seconds: int) -> None: ...

    async def destroy(self, session_id: str) -> None: ...

    async def aclose(self) -> None: ...


class MemorySessionStore:
    """Process-local store for tests and single-worker deployments."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: dict[str, tuple[float, dict[str, Any]]] = {}

    def _prune(self, now_ts: float) -> None:
        expired = [sid for sid, (expires_at, _) in self._entries.items() if expires_at <= now_ts]
        for sid in expired:
            self._entries.pop(sid, None)

    async def get(self, session_id: str) -> dict[str, Any] | None:
        now_ts = self._clock()
        self._prune(now_ts)
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        return dict(entry[1])

    async def set(self, session_id: str, data: dict[str, Any], ttl_seconds: int) -> None:
        now_ts = self._clock()
        self._prune(now_ts)
        self._entries[session_id] = (now_ts + max(ttl_seconds, 1), dict(data))

    async def destroy(self, session_id: str) -> None:
        self._entries.pop(session_id, None)

    async def aclose(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        self._prune(self._clock())
        return len(self._entries)


class RedisSessionStore:
    """Redis-backed store; expiry is delegated to the key TTL."""

    def __init__(self, redis_url: str, *, key_prefix: str = "iobic:session:"):
        self._redis_url = redis_url
        self._key_prefix = key_prefix
        self._client = None

    def _key(self, session_id: str) -> str:
        return f"{self._key_prefix}{session_id}"

    def _get_client(self):
        if self._client is None:
            import redis.asyncio as aioredis

            self._client = aioredis.from_url(self._redis_url, decode_responses=True)
        return self._client

    async def get(self, session_id: str) -> dict[str, Any] | None:
        raw = await self._get_client().get(self._key(session_id))
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable session payload")
            await self.destroy(session_id)
            return None
        return data if isinstance(data, dict) else None

    async def set(self, session_id: str, data: dict[str, Any], ttl_seconds: int) -> None:
        await self._get_client().set(
            self._key(session_id), json.dumps(data), ex=max(ttl_seconds, 1)
        )

    async def destroy(self, session_id: str) -> None:
        await self._get_client().delete(self._key(session_id))

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def build_session_store(settings: Settings) -> SessionStore:
    backend = settings.session_backend.strip().lower()
    if backend == "redis":
        return RedisSessionStore(settings.redis_url)
    if backend != "memory":
        raise ValueError(f"Unsupported SESSION_BACKEND '{settings.session_backend}'")
    return MemorySessionStore()
