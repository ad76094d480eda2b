"""
Verification-email resend throttle.

Callers ask ``check(key)`` before sending; at most
``max_resends_per_window`` sends are allowed per
``resend_interval_seconds``.  The window store is injectable so a shared
backend can stand in for the in-process one.
"""

from __future__ import annotations

from datetime import timedelta

from marketplace_config.schema import VerificationConfig
from marketplace_kernel.domain.clock import Clock, SystemClock
from marketplace_kernel.exceptions import RateLimitedError
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.utils.rate_limit import (
    InMemoryWindowStore,
    WindowDecision,
    WindowStore,
)

logger = get_logger("services.verification_throttle")


class ResendThrottle:

    def __init__(
        self,
        store: WindowStore | None = None,
        clock: Clock | None = None,
        resend_interval_seconds: int = 120,
        max_resends_per_window: int = 1,
    ) -> None:
        if resend_interval_seconds <= 0:
            raise ValueError("resend_interval_seconds must be positive")
        if max_resends_per_window < 1:
            raise ValueError("max_resends_per_window must be at least 1")
        self.store = store if store is not None else InMemoryWindowStore()
        self.clock = clock or SystemClock()
        self.window = timedelta(seconds=resend_interval_seconds)
        self.limit = max_resends_per_window

    @classmethod
    def from_config(
        cls,
        config: VerificationConfig,
        store: WindowStore | None = None,
        clock: Clock | None = None,
    ) -> ResendThrottle:
        return cls(
            store=store,
            clock=clock,
            resend_interval_seconds=config.resend_interval_seconds,
            max_resends_per_window=config.max_resends_per_window,
        )

    def check(self, key: str) -> WindowDecision:
        """
        Record a resend attempt for ``key`` (usually the account email).

        Raises:
            RateLimitedError: the window's allowance is used up.
        """
        now = self.clock.now_utc()
        decision = self.store.hit(_store_key(key), self.limit, self.window, now)
        if not decision.allowed:
            retry_after = decision.retry_after_seconds(now)
            logger.info(
                "verification_resend_throttled",
                extra={"retry_after_seconds": retry_after},
            )
            raise RateLimitedError(key, retry_after)
        return decision

    def reset(self, key: str) -> None:
        self.store.reset(_store_key(key))


def _store_key(key: str) -> str:
    return f"verification-resend:{key.strip().lower()}"
