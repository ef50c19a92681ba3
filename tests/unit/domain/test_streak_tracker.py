"""
Unit Tests for the Streak Tracker
=================================

Purpose
-------
Verify the four streak rules and their priority order.

Test Coverage
-------------
- First login, same day, consecutive day, gap and future-day resets
- Parsing of stored last-login values
- Input validation

Testing Strategy
----------------
- Pure function tests
- AAA pattern (Arrange, Act, Assert)
"""

from datetime import date, datetime, timezone

import pytest

from questline.domain.models.progression import UserProgressionState
from questline.modules.progression.streak_tracker import StreakRule, next_streak, parse_day
from questline.modules.shared.exceptions import InvalidInputError

TODAY = date(2026, 3, 14)


@pytest.mark.unit
@pytest.mark.domain
class TestNextStreak:
    def test_first_login_starts_at_one(self):
        update = next_streak(None, TODAY, 0)

        assert update.streak == 1
        assert update.rule is StreakRule.FIRST_LOGIN
        assert update.changed is True

    def test_same_day_login_is_unchanged(self):
        update = next_streak(TODAY, TODAY, 4)

        assert update.streak == 4
        assert update.rule is StreakRule.SAME_DAY
        assert update.changed is False

    def test_consecutive_day_increments(self):
        update = next_streak(date(2026, 3, 13), TODAY, 4)

        assert update.streak == 5
        assert update.rule is StreakRule.CONTINUED

    def test_gap_of_three_days_resets(self):
        update = next_streak(date(2026, 3, 11), TODAY, 10)

        assert update.streak == 1
        assert update.rule is StreakRule.RESET

    def test_future_last_login_resets(self):
        update = next_streak(date(2026, 3, 20), TODAY, 6)

        assert update.streak == 1
        assert update.rule is StreakRule.RESET

    def test_unparsable_last_login_is_first_login(self):
        update = next_streak("not-a-date", TODAY, 9)

        assert update.streak == 1
        assert update.rule is StreakRule.FIRST_LOGIN

    def test_iso_string_last_login(self):
        assert next_streak("2026-03-13", TODAY, 2).streak == 3

    def test_year_boundary(self):
        assert next_streak(date(2025, 12, 31), date(2026, 1, 1), 7).streak == 8

    def test_negative_streak_rejected(self):
        with pytest.raises(InvalidInputError):
            next_streak(TODAY, TODAY, -1)

    def test_non_date_today_rejected(self):
        with pytest.raises(InvalidInputError):
            next_streak(None, "2026-03-14", 0)


@pytest.mark.unit
@pytest.mark.domain
class TestParseDay:
    def test_datetime_is_truncated(self):
        assert parse_day(datetime(2026, 3, 14, 23, 59, tzinfo=timezone.utc)) == TODAY

    def test_full_iso_timestamp(self):
        assert parse_day("2026-03-14T08:30:00Z") == TODAY

    @pytest.mark.parametrize("value", [None, "", "yesterday", 20260314])
    def test_unparsable_values(self, value):
        assert parse_day(value) is None

    def test_padded_iso_day(self):
        assert parse_day("  2026-03-14 ") == TODAY

    def test_matches_stored_document_codec(self):
        state = UserProgressionState.from_document({"xp": 0, "lastLoginDay": " 2026-03-14"})

        assert state.last_login_day == parse_day(" 2026-03-14") == TODAY
