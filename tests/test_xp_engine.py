"""Tests for XP awards and level accounting."""

from datetime import date

import pytest

from app.core.exceptions import InvalidInputError
from app.gamification.streak import StreakTracker
from app.gamification.xp_engine import (
    XpEngine,
    accuracy_bonus,
    level_for_xp,
    level_progress,
    level_title,
    problem_base_xp,
    streak_milestone_bonus,
    xp_engine,
)
from app.schemas.achievements import StatsSnapshot
from app.schemas.progression import CommitmentTier, ProblemOutcome, ProgressRecord, SessionOutcome


@pytest.fixture
def engine():
    return XpEngine(achievements=None)


def kinds(bonuses):
    return [bonus.kind for bonus in bonuses]


class TestLevels:

    def test_level_bands(self):
        assert level_for_xp(0) == 1
        assert level_for_xp(99) == 1
        assert level_for_xp(100) == 2
        assert level_for_xp(250) == 3

    def test_negative_xp_rejected(self):
        with pytest.raises(InvalidInputError):
            level_for_xp(-1)

    def test_titles(self):
        assert level_title(1) == "Math Sprout"
        assert level_title(4) == "Math Sprout"
        assert level_title(5) == "Math Explorer"
        assert level_title(120) == "Math Legend"

    def test_level_progress(self):
        progress = level_progress(250)

        assert progress.level == 3
        assert progress.xp_into_level == 50
        assert progress.xp_to_next_level == 50
        assert progress.percentage == 50.0


class TestProblemBonuses:

    def test_incorrect_earns_nothing(self, engine):
        result = engine.on_problem_solved(
            ProgressRecord(total_xp=40),
            ProblemOutcome(correct=False, time_spent_seconds=3, first_try=True, streak_count=6),
        )

        assert result.xp_gained == 0
        assert result.bonuses == []
        assert result.total_xp == 40

    def test_plain_correct(self, engine):
        bonuses = engine.problem_bonuses(ProblemOutcome(correct=True, time_spent_seconds=20))

        assert kinds(bonuses) == ["correct"]
        assert bonuses[0].amount == 10

    def test_tier_multiplier(self):
        assert problem_base_xp(None) == 10
        assert problem_base_xp(CommitmentTier.FIVE_MINUTES) == 10
        assert problem_base_xp(CommitmentTier.THIRTY_MINUTES) == 15
        assert problem_base_xp(CommitmentTier.ONE_MONTH) == 40

    def test_fast_boundary(self, engine):
        at_limit = engine.problem_bonuses(ProblemOutcome(correct=True, time_spent_seconds=10))
        over_limit = engine.problem_bonuses(ProblemOutcome(correct=True, time_spent_seconds=10.5))

        assert "fast" in kinds(at_limit)
        assert "fast" not in kinds(over_limit)

    def test_answer_streak(self, engine):
        short = engine.problem_bonuses(ProblemOutcome(correct=True, time_spent_seconds=20, streak_count=2))
        started = engine.problem_bonuses(ProblemOutcome(correct=True, time_spent_seconds=20, streak_count=3))
        long = engine.problem_bonuses(ProblemOutcome(correct=True, time_spent_seconds=20, streak_count=10))

        assert "streak" not in kinds(short)
        assert started[-1].amount == 5
        assert long[-1].amount == 25

    def test_all_problem_bonuses(self, engine):
        result = engine.on_problem_solved(
            ProgressRecord(),
            ProblemOutcome(
                correct=True,
                time_spent_seconds=4,
                first_try=True,
                difficulty_tier=CommitmentTier.ONE_HOUR,
                streak_count=4,
            ),
        )

        assert kinds(result.bonuses) == ["correct", "first_try", "fast", "streak"]
        assert result.xp_gained == 20 + 3 + 5 + 10

    def test_level_up(self, engine):
        result = engine.on_problem_solved(
            ProgressRecord(total_xp=95),
            ProblemOutcome(correct=True, time_spent_seconds=20),
        )

        assert result.total_xp == 105
        assert result.previous_level == 1
        assert result.new_level == 2
        assert result.leveled_up is True


class TestSessionBonuses:

    def test_accuracy_bands(self):
        assert accuracy_bonus(10, 10) == 50
        assert accuracy_bonus(9, 10) == 30
        assert accuracy_bonus(8, 10) == 15
        assert accuracy_bonus(7, 10) == 5
        assert accuracy_bonus(6, 10) == 0
        assert accuracy_bonus(0, 0) == 0

    def test_partial_credit_rounds_up(self, engine):
        bonuses = engine.session_bonuses(
            SessionOutcome(total_problems=3, correct_problems=1, time_spent_minutes=5)
        )

        assert kinds(bonuses) == ["session_complete"]
        assert bonuses[0].amount == 7

    def test_empty_session(self, engine):
        bonuses = engine.session_bonuses(
            SessionOutcome(total_problems=0, correct_problems=0, time_spent_minutes=0, in_flow_state=True)
        )

        assert kinds(bonuses) == ["session_complete"]
        assert bonuses[0].amount == 0

    def test_perfect_session(self, engine):
        result = engine.on_session_complete(
            ProgressRecord(),
            SessionOutcome(total_problems=5, correct_problems=5, time_spent_minutes=4),
        )

        assert kinds(result.bonuses) == ["session_complete", "accuracy", "perfect"]
        assert result.xp_gained == 20 + 50 + 50

    def test_flow_daily_first(self, engine):
        result = engine.on_session_complete(
            ProgressRecord(),
            SessionOutcome(
                total_problems=10,
                correct_problems=9,
                time_spent_minutes=12,
                in_flow_state=True,
                daily_first=True,
            ),
        )

        assert kinds(result.bonuses) == ["session_complete", "accuracy", "flow", "daily_first"]
        assert result.xp_gained == 18 + 30 + 30 + 15

    def test_flow_needs_time_and_accuracy(self):
        rushed = SessionOutcome(total_problems=10, correct_problems=10, time_spent_minutes=3, in_flow_state=True)
        sloppy = SessionOutcome(total_problems=10, correct_problems=5, time_spent_minutes=30, in_flow_state=True)
        unflagged = SessionOutcome(total_problems=10, correct_problems=10, time_spent_minutes=30)

        assert not XpEngine.is_flow_session(rushed)
        assert not XpEngine.is_flow_session(sloppy)
        assert not XpEngine.is_flow_session(unflagged)

    def test_day_streak_bonus_capped(self, engine):
        def streak_amount(days):
            bonuses = engine.session_bonuses(SessionOutcome(
                total_problems=1, correct_problems=0, time_spent_minutes=1, current_streak=days,
            ))
            return {b.kind: b.amount for b in bonuses}.get("streak_days")

        assert streak_amount(1) is None
        assert streak_amount(4) == 20
        assert streak_amount(40) == 150

    def test_more_correct_than_total(self, engine):
        with pytest.raises(InvalidInputError):
            engine.session_bonuses(SessionOutcome(total_problems=2, correct_problems=3, time_spent_minutes=1))


class TestStreakMilestones:

    def test_milestone_amounts(self):
        assert streak_milestone_bonus(3).amount == 30
        assert streak_milestone_bonus(14).amount == 50
        assert streak_milestone_bonus(365).amount == 5000
        assert streak_milestone_bonus(4) is None
        assert streak_milestone_bonus(None) is None

    def test_session_on_milestone_day(self, engine):
        update = StreakTracker.record_activity(date(2024, 1, 6), date(2024, 1, 7), current_streak=2)
        result = engine.on_session_complete(ProgressRecord(), SessionOutcome(
            total_problems=1,
            correct_problems=0,
            time_spent_minutes=1,
            current_streak=update.new_streak_days,
            streak_milestone=update.milestone_reached,
        ))

        assert kinds(result.bonuses) == ["session_complete", "streak_days", "streak_milestone"]
        assert result.bonuses[-1].amount == 30
        assert result.xp_gained == sum(b.amount for b in result.bonuses)

    def test_wrong_answer_still_earns_milestone(self, engine):
        bonuses = engine.problem_bonuses(
            ProblemOutcome(correct=False, time_spent_seconds=30, streak_milestone=7)
        )

        assert kinds(bonuses) == ["streak_milestone"]
        assert bonuses[0].amount == 100

    def test_correct_answer_on_milestone_day(self, engine):
        bonuses = engine.problem_bonuses(
            ProblemOutcome(correct=True, time_spent_seconds=30, streak_milestone=30)
        )

        assert kinds(bonuses) == ["correct", "streak_milestone"]
        assert sum(b.amount for b in bonuses) == 10 + 500


class TestAchievementFolding:

    def test_unlock_adds_reward(self):
        result = xp_engine.on_problem_solved(
            ProgressRecord(),
            ProblemOutcome(correct=True, time_spent_seconds=20),
            stats=StatsSnapshot(problems_solved=1),
        )

        assert result.achievements_unlocked == ["first_problem"]
        assert kinds(result.bonuses) == ["correct", "achievement"]
        assert result.xp_gained == 60

    def test_already_unlocked_skipped(self):
        result = xp_engine.on_problem_solved(
            ProgressRecord(total_xp=60),
            ProblemOutcome(correct=True, time_spent_seconds=20),
            stats=StatsSnapshot(total_xp=60, problems_solved=2),
            already_unlocked=["first_problem"],
        )

        assert result.achievements_unlocked == []
        assert result.xp_gained == 10

    def test_thresholds_use_xp_from_this_event(self):
        result = xp_engine.on_problem_solved(
            ProgressRecord(total_xp=995, current_level=10),
            ProblemOutcome(correct=True, time_spent_seconds=20),
            stats=StatsSnapshot(total_xp=995, level=10, problems_solved=40),
            already_unlocked=["first_problem", "problems_10", "level_5", "level_10"],
        )

        assert result.achievements_unlocked == ["xp_1000"]
        assert result.total_xp == 995 + 10 + 100
