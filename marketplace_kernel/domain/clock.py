"""
Injectable time source for the marketplace kernel.

Services and the resend throttle never read the wall clock themselves: the
"strictly in the future" check on proposed dates, completion and payment
timestamps, negotiation ordering and the settlement marker all come from
the Clock they were constructed with.  Every value a Clock hands out is an
aware UTC datetime.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

# Where DeterministicClock starts unless told otherwise
DEFAULT_TEST_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(ABC):

    @abstractmethod
    def now_utc(self) -> datetime:
        """The current instant as an aware UTC datetime."""

    def now(self) -> datetime:
        return self.now_utc()


class SystemClock(Clock):
    """Wall-clock time.  The only place the kernel touches real time."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock for tests and replays.

    Time stands still until ``advance()``, ``tick()`` or ``set_time()``
    moves it, so two reads inside one operation always agree.
    """

    def __init__(self, start: datetime | None = None):
        self._current = _as_utc(start) if start is not None else DEFAULT_TEST_START

    def now_utc(self) -> datetime:
        return self._current

    def set_time(self, value: datetime) -> None:
        self._current = _as_utc(value)

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Move forward one second and return the new instant."""
        self.advance(1)
        return self._current
