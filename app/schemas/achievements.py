"""Achievement catalog types and the cumulative stats snapshot."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AchievementCategory(str, Enum):
    """Display grouping only."""
    PROBLEMS = "problems"
    STREAK = "streak"
    ACCURACY = "accuracy"
    FLOW = "flow"
    SPEED = "speed"
    MASTERY = "mastery"
    STUDY = "study"
    SPECIAL = "special"


class AchievementTier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"


class StatMetric(str, Enum):
    """Counters an achievement can be keyed on; values match StatsSnapshot fields."""
    TOTAL_XP = "total_xp"
    LEVEL = "level"
    STREAK_DAYS = "streak_days"
    LONGEST_STREAK = "longest_streak"
    PROBLEMS_ATTEMPTED = "problems_attempted"
    PROBLEMS_SOLVED = "problems_solved"
    PERFECT_SESSIONS = "perfect_sessions"
    FLOW_SESSIONS = "flow_sessions"
    FAST_SOLVES = "fast_solves"
    MAX_CORRECT_STREAK = "max_correct_streak"
    AVERAGE_ACCURACY = "average_accuracy"
    STUDY_MINUTES = "study_minutes"
    SESSIONS_COMPLETED = "sessions_completed"


class AchievementId(str, Enum):
    FIRST_PROBLEM = "first_problem"
    PROBLEMS_10 = "problems_10"
    PROBLEMS_50 = "problems_50"
    PROBLEMS_100 = "problems_100"
    PROBLEMS_500 = "problems_500"
    PROBLEMS_1000 = "problems_1000"
    STREAK_3 = "streak_3"
    STREAK_7 = "streak_7"
    STREAK_30 = "streak_30"
    STREAK_100 = "streak_100"
    STREAK_365 = "streak_365"
    PERFECT_SESSION = "accuracy_perfect_session"
    PERFECT_10 = "accuracy_perfect_10"
    ACCURACY_90_AVG = "accuracy_90_avg"
    FLOW_FIRST = "flow_first"
    FLOW_10 = "flow_10"
    FLOW_MASTER = "flow_master"
    SPEED_10_FAST = "speed_10_fast"
    COMBO_5 = "speed_streak_5"
    COMBO_10 = "speed_streak_10"
    COMBO_20 = "speed_streak_20"
    LEVEL_5 = "level_5"
    LEVEL_10 = "level_10"
    LEVEL_25 = "level_25"
    LEVEL_50 = "level_50"
    LEVEL_100 = "level_100"
    XP_1000 = "xp_1000"
    XP_10000 = "xp_10000"
    XP_100000 = "xp_100000"
    STUDY_60_MINUTES = "study_60_minutes"
    STUDY_600_MINUTES = "study_600_minutes"
    SESSIONS_10 = "sessions_10"
    SESSIONS_100 = "sessions_100"


class StatsSnapshot(BaseModel):
    """Cumulative learner counters evaluated by the achievement engine."""

    model_config = ConfigDict(frozen=True)

    total_xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    streak_days: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    problems_attempted: int = Field(default=0, ge=0)
    problems_solved: int = Field(default=0, ge=0)
    perfect_sessions: int = Field(default=0, ge=0)
    flow_sessions: int = Field(default=0, ge=0)
    fast_solves: int = Field(default=0, ge=0)
    max_correct_streak: int = Field(default=0, ge=0)
    average_accuracy: float = Field(default=0.0, ge=0, le=100)
    study_minutes: float = Field(default=0.0, ge=0)
    sessions_completed: int = Field(default=0, ge=0)

    def value(self, metric: StatMetric) -> float:
        return getattr(self, metric.value)

    def dominated_by(self, other: "StatsSnapshot") -> bool:
        """True when every counter here is <= the same counter in ``other``."""
        return all(self.value(metric) <= other.value(metric) for metric in StatMetric)


class AchievementDefinition(BaseModel):
    """Static catalog entry."""

    model_config = ConfigDict(frozen=True)

    id: AchievementId
    name: str
    description: str
    category: AchievementCategory
    tier: AchievementTier
    xp_reward: int = Field(ge=0)
    metric: StatMetric
    threshold: float = Field(gt=0)
    # Ratio metrics only count once enough problems back them
    min_attempts: int = Field(default=0, ge=0)

    def condition(self, stats: StatsSnapshot) -> bool:
        """Monotone in the metric and in ``problems_attempted``."""
        return stats.problems_attempted >= self.min_attempts and stats.value(self.metric) >= self.threshold
