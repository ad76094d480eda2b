"""
Fixed-window rate limiting with an injectable store.

The store interface is deliberately small (one ``hit`` call per request) so
``RedisWindowStore`` (utils/redis_window_store.py) can replace the
in-process store without touching callers.
Time is passed in by the caller, which reads it from the injected Clock.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Protocol


@dataclass(frozen=True)
class WindowDecision:
    allowed: bool
    remaining: int
    reset_at: datetime

    def retry_after_seconds(self, now: datetime) -> int:
        """Whole seconds until the window resets, never less than 1 when blocked."""
        if self.allowed:
            return 0
        return max(1, math.ceil((self.reset_at - now).total_seconds()))


class WindowStore(Protocol):
    def hit(
        self,
        key: str,
        limit: int,
        window: timedelta,
        now: datetime,
    ) -> WindowDecision:
        """Record one attempt for ``key`` and report whether it is allowed."""
        ...

    def reset(self, key: str) -> None:
        ...


class InMemoryWindowStore:
    """
    Process-local store: ``{key: (count, reset_at)}`` guarded by a lock.

    Blocked attempts are not counted, so a caller that keeps retrying does
    not push its own window further out.
    """

    def __init__(self) -> None:
        self._windows: dict[str, tuple[int, datetime]] = {}
        self._lock = Lock()

    def hit(
        self,
        key: str,
        limit: int,
        window: timedelta,
        now: datetime,
    ) -> WindowDecision:
        with self._lock:
            self._purge_expired(now)
            count, reset_at = self._windows.get(key, (0, now + window))
            if count >= limit:
                return WindowDecision(allowed=False, remaining=0, reset_at=reset_at)
            count += 1
            self._windows[key] = (count, reset_at)
            return WindowDecision(
                allowed=True,
                remaining=limit - count,
                reset_at=reset_at,
            )

    def reset(self, key: str) -> None:
        with self._lock:
            self._windows.pop(key, None)

    def _purge_expired(self, now: datetime) -> None:
        expired = [k for k, (_, reset_at) in self._windows.items() if now >= reset_at]
        for k in expired:
            del self._windows[k]
