"""Clock sources used to decide what "today" and "now" mean."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Protocol for a date/time source."""

    def now(self) -> datetime:
        """Current timezone-aware timestamp."""
        ...

    def today(self) -> date:
        """Current calendar day in the business timezone."""
        ...


class SystemClock:
    """Server clock in a configured business timezone."""

    def __init__(self, tz_name: str = "UTC"):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock frozen at a given instant. Used by tests and replays."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def today(self) -> date:
        return self.instant.date()

    def advance(self, **kwargs: float) -> None:
        """Move the clock forward by a timedelta expressed as keyword args."""
        self.instant = self.instant + timedelta(**kwargs)
