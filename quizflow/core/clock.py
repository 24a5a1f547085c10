"""
Clock

All reads of "now" go through a Clock so quiz status, duplicate windows and
analytics can be tested with a fixed point in time.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from quizflow.core.config import settings


class Clock:
    """Wall clock in the configured quiz timezone."""

    def now(self) -> datetime:
        return datetime.now(settings.tzinfo)

    def utcnow(self) -> datetime:
        """Current time in UTC, the zone every stored timestamp uses."""
        return self.now().astimezone(timezone.utc)


class FixedClock(Clock):
    """A clock that only moves when told to."""

    def __init__(self, current: datetime):
        if current.tzinfo is None:
            current = current.replace(tzinfo=settings.tzinfo)
        self.current = current

    def now(self) -> datetime:
        return self.current

    def set(self, current: datetime) -> None:
        if current.tzinfo is None:
            current = current.replace(tzinfo=settings.tzinfo)
        self.current = current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


_default_clock: Optional[Clock] = None


def get_clock() -> Clock:
    """FastAPI dependency returning the process-wide clock."""
    global _default_clock
    if _default_clock is None:
        _default_clock = Clock()
    return _default_clock
