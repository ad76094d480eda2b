"""
RedisWindowStore against an in-test Redis double.

The double implements only the commands the store sends (INCR, PTTL,
PEXPIRE, DECR, DEL and a pipeline of the first two) and keeps its own
server clock so expiry can be driven from the test.
"""

from datetime import datetime, timedelta, timezone

import pytest

from marketplace_kernel.domain.clock import DeterministicClock
from marketplace_kernel.exceptions import RateLimitedError
from marketplace_kernel.utils.redis_window_store import RedisWindowStore
from marketplace_services.verification_throttle import ResendThrottle

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
WINDOW = timedelta(seconds=120)


class _RedisDouble:

    def __init__(self):
        self.now_ms = 0
        self.values: dict[str, int] = {}
        self.expires_at: dict[str, int] = {}

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)

    def _expire_due(self, key: str) -> None:
        deadline = self.expires_at.get(key)
        if deadline is not None and deadline <= self.now_ms:
            self.values.pop(key, None)
            self.expires_at.pop(key, None)

    def incr(self, key: str) -> int:
        self._expire_due(key)
        self.values[key] = self.values.get(key, 0) + 1
        return self.values[key]

    def decr(self, key: str) -> int:
        self._expire_due(key)
        self.values[key] = self.values.get(key, 0) - 1
        return self.values[key]

    def pttl(self, key: str) -> int:
        self._expire_due(key)
        if key not in self.values:
            return -2
        if key not in self.expires_at:
            return -1
        return self.expires_at[key] - self.now_ms

    def pexpire(self, key: str, ms: int) -> bool:
        self.expires_at[key] = self.now_ms + ms
        return True

    def delete(self, key: str) -> int:
        self.expires_at.pop(key, None)
        return 1 if self.values.pop(key, None) is not None else 0

    def pipeline(self):
        return _PipelineDouble(self)


class _PipelineDouble:

    def __init__(self, client: _RedisDouble):
        self._client = client
        self._calls = []

    def incr(self, key):
        self._calls.append((self._client.incr, key))
        return self

    def pttl(self, key):
        self._calls.append((self._client.pttl, key))
        return self

    def execute(self):
        return [fn(key) for fn, key in self._calls]


@pytest.fixture
def server():
    return _RedisDouble()


@pytest.fixture
def store(server):
    return RedisWindowStore(server, prefix="test:")


class TestRedisWindowStore:

    def test_first_hit_opens_window(self, store, server):
        decision = store.hit("k", 2, WINDOW, T0)

        assert (decision.allowed, decision.remaining) == (True, 1)
        assert decision.reset_at == T0 + WINDOW
        assert server.pttl("test:k") == 120_000

    def test_limit_blocks_without_counting(self, store, server):
        store.hit("k", 1, WINDOW, T0)
        server.advance(30)
        blocked = store.hit("k", 1, WINDOW, T0 + timedelta(seconds=30))
        store.hit("k", 1, WINDOW, T0 + timedelta(seconds=31))

        assert blocked.allowed is False
        assert blocked.reset_at == T0 + timedelta(seconds=120)
        assert server.values["test:k"] == 1

    def test_window_ends_when_redis_expires_the_key(self, store, server):
        store.hit("k", 1, WINDOW, T0)
        server.advance(120)

        assert store.hit("k", 1, WINDOW, T0 + WINDOW).allowed is True

    def test_reset_deletes_counter(self, store, server):
        store.hit("k", 1, WINDOW, T0)
        store.reset("k")

        assert "test:k" not in server.values
        assert store.hit("k", 1, WINDOW, T0).allowed is True


class TestSharedThrottle:

    def test_two_throttles_share_one_allowance(self, server):
        clock = DeterministicClock(T0)
        web = ResendThrottle(store=RedisWindowStore(server), clock=clock)
        worker = ResendThrottle(store=RedisWindowStore(server), clock=clock)

        web.check("ana@example.com")
        with pytest.raises(RateLimitedError) as exc_info:
            worker.check("ANA@example.com")

        assert exc_info.value.retry_after_seconds == 120
