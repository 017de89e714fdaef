"""Login lockout guard for brute-force resistance."""

from __future__ import annotations

import time
from collections.abc import Callable

FAIL_WINDOW_SECONDS = 15 * 60
FAIL_THRESHOLD = 8
BLOCK_SECONDS = 15 * 60


class LoginLockout:
    """Tracks failed logins per identifier and blocks after a threshold."""

    def __init__(
        self,
        *,
        threshold: int = FAIL_THRESHOLD,
        window_seconds: int = FAIL_WINDOW_SECONDS,
        block_seconds: int = BLOCK_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.threshold = threshold
        self.window_seconds = window_seconds
        self.block_seconds = block_seconds
        self._clock = clock
        self._failures: dict[str, list[float]] = {}
        self._blocked_until: dict[str, float] = {}

    def _cleanup(self, now_ts: float) -> None:
        for key in [k for k, until in self._blocked_until.items() if until <= now_ts]:
            self._blocked_until.pop(key, None)
        for key, timestamps in list(self._failures.items()):
            recent = [ts for ts in timestamps if now_ts - ts <= self.window_seconds]
            if recent:
                self._failures[key] = recent
            else:
                self._failures.pop(key, None)

    def is_blocked(self, identifier: str) -> tuple[bool, int]:
        now_ts = self._clock()
        self._cleanup(now_ts)
        blocked_until = self._blocked_until.get(identifier)
        if blocked_until is None:
            return False, 0
        return True, max(1, int(blocked_until - now_ts))

    def record_failure(self, identifier: str) -> int:
        now_ts = self._clock()
        self._cleanup(now_ts)
        series = self._failures.setdefault(identifier, [])
        series.append(now_ts)
        if len(series) >= self.threshold:
            self._blocked_until[identifier] = now_ts + self.block_seconds
        return len(series)

    def clear(self, identifier: str) -> None:
        self._failures.pop(identifier, None)
        self._blocked_until.pop(identifier, None)
