"""Tests for daily streak tracking."""

from datetime import date, timedelta

import pytest

from app.core.exceptions import InvalidInputError
from app.gamification.streak import StreakTracker, streak_tracker


class TestRecordActivity:

    def test_first_ever_activity(self):
        update = streak_tracker.record_activity(None, date(2024, 1, 1))

        assert update.new_streak_days == 1
        assert update.longest_streak == 1
        assert update.is_first_today is True
        assert update.streak_broken is False

    def test_same_day_is_unchanged(self):
        update = streak_tracker.record_activity(date(2024, 1, 5), date(2024, 1, 5), 4, 6)

        assert update.new_streak_days == 4
        assert update.longest_streak == 6
        assert update.is_first_today is False
        assert update.milestone_reached is None

    def test_next_day_extends(self):
        update = streak_tracker.record_activity(date(2024, 1, 5), date(2024, 1, 6), 2, 2)

        assert update.new_streak_days == 3
        assert update.longest_streak == 3
        assert update.milestone_reached == 3

    def test_gap_resets_but_keeps_longest(self):
        update = streak_tracker.record_activity(date(2024, 1, 5), date(2024, 1, 7), 4, 9)

        assert update.new_streak_days == 1
        assert update.longest_streak == 9
        assert update.streak_broken is True

    def test_month_boundary(self):
        update = streak_tracker.record_activity(date(2024, 2, 29), date(2024, 3, 1), 10, 10)

        assert update.new_streak_days == 11

    def test_going_back_in_time_rejected(self):
        with pytest.raises(InvalidInputError):
            streak_tracker.record_activity(date(2024, 1, 5), date(2024, 1, 4), 1, 1)

    def test_negative_counters_rejected(self):
        with pytest.raises(InvalidInputError):
            streak_tracker.record_activity(None, date(2024, 1, 4), -1, 0)

    @pytest.mark.parametrize("gap", range(0, 10))
    def test_continues_or_resets(self, gap):
        last = date(2024, 6, 10)
        update = StreakTracker.record_activity(last, last + timedelta(days=gap), 5, 5)

        if gap <= 1:
            assert update.new_streak_days >= 5
        else:
            assert update.new_streak_days == 1
        assert update.longest_streak >= update.new_streak_days


class TestReadSide:

    def test_streak_as_of(self):
        today = date(2024, 3, 10)

        assert StreakTracker.streak_as_of(4, today, today) == 4
        assert StreakTracker.streak_as_of(4, today - timedelta(days=1), today) == 4
        assert StreakTracker.streak_as_of(4, today - timedelta(days=2), today) == 0
        assert StreakTracker.streak_as_of(0, None, today) == 0

    def test_first_activity_today(self):
        today = date(2024, 3, 10)

        assert StreakTracker.is_first_activity_today(None, today) is True
        assert StreakTracker.is_first_activity_today(today, today) is False

    def test_weekly_activity(self):
        today = date(2024, 3, 10)
        dates = [today, today - timedelta(days=2), today - timedelta(days=9)]

        assert StreakTracker.weekly_activity(dates, today) == [False, False, False, False, True, False, True]
