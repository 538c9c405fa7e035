"""Daily streak tracking."""

from datetime import date, timedelta
from typing import Iterable, List, Optional

from app.core.exceptions import InvalidInputError
from app.schemas.progression import StreakUpdate

STREAK_MILESTONES = (3, 7, 14, 30, 50, 100, 200, 365)


class StreakTracker:
    """Day-granular continuity over a learner's last activity date.

    No grace day: missing a calendar day resets the streak to 1 on the next
    activity.
    """

    @staticmethod
    def record_activity(
        last_activity_date: Optional[date],
        today: date,
        current_streak: int = 0,
        longest_streak: int = 0,
    ) -> StreakUpdate:
        if current_streak < 0 or longest_streak < 0:
            raise InvalidInputError(
                "streak counters must be non-negative",
                {"current_streak": current_streak, "longest_streak": longest_streak},
            )

        if last_activity_date is None:
            new_streak, first, broken = 1, True, False
        elif today < last_activity_date:
            raise InvalidInputError(
                "activity date precedes the last recorded activity",
                {"today": today.isoformat(), "last_activity_date": last_activity_date.isoformat()},
            )
        elif today == last_activity_date:
            # Same day re-entry; a stored 0 means the record predates any activity
            new_streak, first, broken = max(current_streak, 1), False, False
        elif today == last_activity_date + timedelta(days=1):
            new_streak, first, broken = current_streak + 1, True, False
        else:
            new_streak, first, broken = 1, True, current_streak > 0

        return StreakUpdate(
            new_streak_days=new_streak,
            longest_streak=max(longest_streak, new_streak),
            is_first_today=first,
            streak_broken=broken,
            milestone_reached=new_streak if first and new_streak in STREAK_MILESTONES else None,
        )

    @staticmethod
    def is_first_activity_today(last_activity_date: Optional[date], today: date) -> bool:
        return last_activity_date != today

    @staticmethod
    def streak_as_of(streak_days: int, last_activity_date: Optional[date], today: date) -> int:
        """Streak to display today: 0 once a full day has been missed."""
        if last_activity_date is None:
            return 0
        if today - last_activity_date > timedelta(days=1):
            return 0
        return streak_days

    @staticmethod
    def weekly_activity(activity_dates: Iterable[date], today: date) -> List[bool]:
        """Seven flags, oldest first, ending with today."""
        active = set(activity_dates)
        return [today - timedelta(days=offset) in active for offset in range(6, -1, -1)]


streak_tracker = StreakTracker()
