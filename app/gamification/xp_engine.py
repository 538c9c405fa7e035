"""XP calculation and level accounting."""

from typing import Dict, Iterable, List, Optional

import structlog

from app.core.config import settings
from app.core.exceptions import InvalidInputError
from app.gamification.achievement_engine import AchievementEngine, achievement_engine
from app.schemas.achievements import StatsSnapshot
from app.schemas.progression import (
    CommitmentTier,
    LevelProgress,
    ProblemOutcome,
    ProgressRecord,
    SessionOutcome,
    XpBonus,
    XpGainResult,
)

logger = structlog.get_logger()

DIFFICULTY_MULTIPLIER: Dict[CommitmentTier, float] = {
    CommitmentTier.FIVE_MINUTES: 1.0,
    CommitmentTier.TEN_MINUTES: 1.2,
    CommitmentTier.THIRTY_MINUTES: 1.5,
    CommitmentTier.ONE_HOUR: 2.0,
    CommitmentTier.ONE_DAY: 2.5,
    CommitmentTier.THREE_DAYS: 3.0,
    CommitmentTier.SEVEN_DAYS: 3.5,
    CommitmentTier.ONE_MONTH: 4.0,
}

LEVEL_TITLES: Dict[int, str] = {
    1: "Math Sprout",
    5: "Math Explorer",
    10: "Math Challenger",
    15: "Math Researcher",
    20: "Math Expert",
    30: "Math Master",
    50: "Math Sage",
    75: "Math Virtuoso",
    100: "Math Legend",
}

# (minimum accuracy percent, bonus), highest first
ACCURACY_BONUSES = ((100, 50), (90, 30), (80, 15), (70, 5))


def level_for_xp(total_xp: int) -> int:
    """Constant-width bands: ``XP_PER_LEVEL`` XP per level, starting at 1."""
    if total_xp < 0:
        raise InvalidInputError("XP cannot be negative", {"total_xp": total_xp})
    return total_xp // settings.XP_PER_LEVEL + 1


def level_title(level: int) -> str:
    for milestone in sorted(LEVEL_TITLES, reverse=True):
        if level >= milestone:
            return LEVEL_TITLES[milestone]
    return LEVEL_TITLES[1]


def level_progress(total_xp: int) -> LevelProgress:
    level = level_for_xp(total_xp)
    into = total_xp - (level - 1) * settings.XP_PER_LEVEL
    return LevelProgress(
        level=level,
        title=level_title(level),
        xp_into_level=into,
        xp_to_next_level=settings.XP_PER_LEVEL - into,
        percentage=round(into / settings.XP_PER_LEVEL * 100, 1),
    )


def problem_base_xp(tier: Optional[CommitmentTier]) -> int:
    multiplier = DIFFICULTY_MULTIPLIER[tier] if tier is not None else 1.0
    return int(settings.XP_PROBLEM_CORRECT * multiplier)


def streak_milestone_bonus(milestone: Optional[int]) -> Optional[XpBonus]:
    amount = settings.XP_STREAK_MILESTONES.get(milestone, 0) if milestone else 0
    if not amount:
        return None
    return XpBonus(kind="streak_milestone", description=f"{milestone}-day streak milestone", amount=amount)


def accuracy_bonus(correct: int, total: int) -> int:
    if total == 0:
        return 0
    for percent, bonus in ACCURACY_BONUSES:
        if correct * 100 >= percent * total:
            return bonus
    return 0


class XpEngine:
    """Pure XP award calculator.

    Takes the learner's current ``ProgressRecord`` and an outcome, returns
    the award and the resulting XP and level. Nothing is persisted here.
    """

    def __init__(self, achievements: Optional[AchievementEngine] = achievement_engine):
        self.achievements = achievements

    def problem_bonuses(self, outcome: ProblemOutcome) -> List[XpBonus]:
        bonuses = self._answer_bonuses(outcome)
        # A wrong answer still counts as activity for the day
        milestone = streak_milestone_bonus(outcome.streak_milestone)
        if milestone:
            bonuses.append(milestone)
        return bonuses

    @staticmethod
    def _answer_bonuses(outcome: ProblemOutcome) -> List[XpBonus]:
        if not outcome.correct:
            return []

        base = problem_base_xp(outcome.difficulty_tier)
        label = f"Correct answer ({outcome.difficulty_tier.value})" if outcome.difficulty_tier else "Correct answer"
        bonuses = [XpBonus(kind="correct", description=label, amount=base)]

        if outcome.first_try:
            bonuses.append(XpBonus(
                kind="first_try",
                description="Correct on the first try",
                amount=settings.XP_PROBLEM_FIRST_TRY,
            ))

        if outcome.time_spent_seconds <= settings.XP_PROBLEM_FAST_SECONDS:
            bonuses.append(XpBonus(
                kind="fast",
                description="Fast solve",
                amount=settings.XP_PROBLEM_FAST,
            ))

        threshold = settings.XP_PROBLEM_STREAK_THRESHOLD
        if outcome.streak_count >= threshold:
            steps = min(outcome.streak_count - threshold + 1, settings.XP_PROBLEM_STREAK_CAP)
            bonuses.append(XpBonus(
                kind="streak",
                description=f"{outcome.streak_count} correct in a row",
                amount=settings.XP_PROBLEM_STREAK * steps,
            ))

        return bonuses

    def session_bonuses(self, outcome: SessionOutcome) -> List[XpBonus]:
        total, correct = outcome.total_problems, outcome.correct_problems
        if correct > total:
            raise InvalidInputError(
                "correct_problems cannot exceed total_problems",
                {"correct_problems": correct, "total_problems": total},
            )

        bonuses: List[XpBonus] = []

        # Ceiling division rounds partial credit toward the learner
        base = -(-settings.XP_SESSION_COMPLETE * correct // total) if total else 0
        bonuses.append(XpBonus(kind="session_complete", description="Session complete", amount=base))

        accuracy = accuracy_bonus(correct, total)
        if accuracy:
            bonuses.append(XpBonus(
                kind="accuracy",
                description=f"{round(outcome.accuracy * 100)}% accuracy",
                amount=accuracy,
            ))

        if total > 0 and correct == total:
            bonuses.append(XpBonus(kind="perfect", description="Perfect session", amount=settings.XP_SESSION_PERFECT))

        if self.is_flow_session(outcome):
            bonuses.append(XpBonus(kind="flow", description="Stayed in flow", amount=settings.XP_SESSION_FLOW))

        if outcome.daily_first:
            bonuses.append(XpBonus(kind="daily_first", description="First practice today", amount=settings.XP_DAILY_FIRST))

        if outcome.current_streak > 1:
            bonuses.append(XpBonus(
                kind="streak_days",
                description=f"{outcome.current_streak}-day streak",
                amount=settings.XP_STREAK_PER_DAY * min(outcome.current_streak, settings.XP_STREAK_DAY_CAP),
            ))

        milestone = streak_milestone_bonus(outcome.streak_milestone)
        if milestone:
            bonuses.append(milestone)

        return bonuses

    @staticmethod
    def is_flow_session(outcome: SessionOutcome) -> bool:
        """Sustained, accurate engagement rather than rushed guessing."""
        return (
            outcome.in_flow_state
            and outcome.total_problems > 0
            and outcome.correct_problems * 100 >= settings.XP_FLOW_MIN_ACCURACY_PERCENT * outcome.total_problems
            and outcome.time_spent_minutes >= settings.XP_FLOW_MIN_MINUTES
        )

    def on_problem_solved(
        self,
        progress: ProgressRecord,
        outcome: ProblemOutcome,
        stats: Optional[StatsSnapshot] = None,
        already_unlocked: Iterable[str] = (),
    ) -> XpGainResult:
        return self._apply(progress, self.problem_bonuses(outcome), stats, already_unlocked)

    def on_session_complete(
        self,
        progress: ProgressRecord,
        outcome: SessionOutcome,
        stats: Optional[StatsSnapshot] = None,
        already_unlocked: Iterable[str] = (),
    ) -> XpGainResult:
        return self._apply(progress, self.session_bonuses(outcome), stats, already_unlocked)

    def _apply(
        self,
        progress: ProgressRecord,
        bonuses: List[XpBonus],
        stats: Optional[StatsSnapshot],
        already_unlocked: Iterable[str],
    ) -> XpGainResult:
        previous_level = level_for_xp(progress.total_xp)
        earned = sum(bonus.amount for bonus in bonuses)

        unlocked: List[str] = []
        if stats is not None and self.achievements is not None:
            provisional = progress.total_xp + earned
            snapshot = stats.model_copy(update={
                "total_xp": max(stats.total_xp, provisional),
                "level": max(stats.level, level_for_xp(provisional)),
            })
            unlocked = self.achievements.evaluate(snapshot, already_unlocked)
            for achievement_id in unlocked:
                definition = self.achievements.get(achievement_id)
                bonuses.append(XpBonus(
                    kind="achievement",
                    description=f"Achievement: {definition.name}",
                    amount=definition.xp_reward,
                ))

        xp_gained = sum(bonus.amount for bonus in bonuses)
        total_xp = progress.total_xp + xp_gained
        new_level = level_for_xp(total_xp)

        return XpGainResult(
            xp_gained=xp_gained,
            bonuses=bonuses,
            total_xp=total_xp,
            previous_level=previous_level,
            new_level=new_level,
            leveled_up=new_level > previous_level,
            level_title=level_title(new_level),
            achievements_unlocked=unlocked,
        )


xp_engine = XpEngine()
