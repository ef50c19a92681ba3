"""
Streak Tracker

Purpose
-------
Pure transition from `(last_login_day, today, current_streak)` to the next
streak count. Days are calendar dates already resolved in the engine's
configured timezone by `Clock`; no instants are compared here.

Rules, in priority order
------------------------
1. No parsable previous login day: streak becomes 1 (first login).
2. Previous login is today: streak unchanged, nothing to persist.
3. Previous login was yesterday: streak + 1.
4. Anything else (a gap of two or more days, or a day in the future): 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from questline.domain.models.base import str_to_day as parse_day
from questline.modules.shared.exceptions import InvalidInputError


class StreakRule(Enum):
    FIRST_LOGIN = "first_login"
    SAME_DAY = "same_day"
    CONTINUED = "continued"
    RESET = "reset"


@dataclass(frozen=True)
class StreakUpdate:
    streak: int
    rule: StreakRule

    @property
    def changed(self) -> bool:
        """Whether `(streak, last_login_day=today)` must be persisted."""
        return self.rule is not StreakRule.SAME_DAY


def next_streak(last_login_day: Any, today: date, current_streak: int) -> StreakUpdate:
    """
    Compute the streak after a login on `today`.

    Args:
        last_login_day: Previous login day (date, datetime, ISO string or None)
        today: Calendar day of this login
        current_streak: Streak stored before this login

    Returns:
        StreakUpdate with the new count and the rule that fired

    Raises:
        InvalidInputError: If `today` is not a date or the streak is negative

    Example:
        >>> next_streak(date(2026, 3, 13), date(2026, 3, 14), 4).streak
        5
        >>> next_streak(date(2026, 3, 11), date(2026, 3, 14), 10).streak
        1
    """
    if not isinstance(today, date):
        raise InvalidInputError("today", f"must be a calendar date, got {today!r}")
    if isinstance(today, datetime):
        today = today.date()
    if current_streak < 0:
        raise InvalidInputError("streak", f"must be non-negative, got {current_streak}")

    previous = parse_day(last_login_day)

    if previous is None:
        return StreakUpdate(streak=1, rule=StreakRule.FIRST_LOGIN)
    if previous == today:
        return StreakUpdate(streak=current_streak, rule=StreakRule.SAME_DAY)
    if previous == today - timedelta(days=1):
        return StreakUpdate(streak=current_streak + 1, rule=StreakRule.CONTINUED)
    return StreakUpdate(streak=1, rule=StreakRule.RESET)
