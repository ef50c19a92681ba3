"""
Calendar clock for streaks and daily-challenge rollover.

Purpose
-------
Provide the single source of "today" for the engine. Calendar days are
computed in one explicit IANA timezone (`Config.PROGRESSION_TIMEZONE`,
UTC by default), never in the host's local zone.

Responsibilities
----------------
- Current instant (`now`) as an aware datetime
- Current calendar day (`today`) in the configured zone
- Start of the next calendar day, used as a challenge's `expires_at`

A FixedClock is provided for tests and replays.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from questline.core.config.config import Config


class Clock:
    """
    Wall clock bound to a timezone.

    >>> clock = Clock("Europe/Paris")
    >>> clock.today()
    datetime.date(2026, 3, 14)
    """

    def __init__(self, tz_name: Optional[str] = None) -> None:
        self.tz_name = tz_name or Config.PROGRESSION_TIMEZONE
        self.tz = ZoneInfo(self.tz_name)

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def start_of_day(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tz)

    def start_of_next_day(self, day: date) -> datetime:
        return self.start_of_day(day + timedelta(days=1))


class FixedClock(Clock):
    """Clock pinned to a given instant; `advance` moves it forward."""

    def __init__(self, instant: datetime, tz_name: str = "UTC") -> None:
        super().__init__(tz_name)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=self.tz)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant.astimezone(self.tz)

    def advance(self, **delta: float) -> None:
        self._instant = self._instant + timedelta(**delta)
