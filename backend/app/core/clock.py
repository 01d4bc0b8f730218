"""Time sources for expiry comparisons.

Every component that compares against "now" takes a Clock so tests can
pin and advance time instead of sleeping.
"""

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Supplies the current UTC time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FrozenClock:
    """Manually controlled clock.

    Args:
        start: Initial time. Defaults to the current UTC time.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime.now(UTC)

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        """Jump to an absolute time."""
        self._now = value

    def advance(self, delta: timedelta) -> datetime:
        """Move forward by delta and return the new time."""
        self._now = self._now + delta
        return self._now


system_clock = SystemClock()
