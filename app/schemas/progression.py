"""Value types shared by the ability, difficulty, XP and streak engines."""

from datetime import date
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

DIAGNOSTIC_LENGTH = 10

MIN_THETA = -4.0
MAX_THETA = 4.0
MIN_GRADE = 1
MAX_GRADE = 12


class CommitmentTier(str, Enum):
    """Expected-duration buckets, easiest first."""
    FIVE_MINUTES = "5min"
    TEN_MINUTES = "10min"
    THIRTY_MINUTES = "30min"
    ONE_HOUR = "1hour"
    ONE_DAY = "1day"
    THREE_DAYS = "3days"
    SEVEN_DAYS = "7days"
    ONE_MONTH = "1month"

    @property
    def rank(self) -> int:
        return list(CommitmentTier).index(self)


class DiagnosticPhase(str, Enum):
    """Diagnostic state machine states."""
    AWAITING_ITEM = "awaiting_item"
    COMPLETED = "completed"


class AbilityState(BaseModel):
    """Ability snapshot used for difficulty selection."""

    model_config = ConfigDict(frozen=True)

    theta: float = Field(ge=MIN_THETA, le=MAX_THETA)
    grade: int = Field(ge=MIN_GRADE, le=MAX_GRADE)
    estimated_level: int = Field(ge=MIN_GRADE, le=MAX_GRADE)


class DiagnosticRun(BaseModel):
    """An in-flight diagnostic test.

    The run is in ``AWAITING_ITEM`` until ``DIAGNOSTIC_LENGTH`` answers have
    been recorded, then ``COMPLETED``. Runs are immutable; recording an
    answer produces a new run.
    """

    model_config = ConfigDict(frozen=True)

    grade: int = Field(ge=MIN_GRADE, le=MAX_GRADE)
    answers: Tuple[bool, ...] = ()
    asked_topics: Tuple[str, ...] = ()
    previous_problem_texts: FrozenSet[str] = frozenset()

    @field_validator("answers")
    @classmethod
    def check_length(cls, v):
        if len(v) > DIAGNOSTIC_LENGTH:
            raise ValueError(f"a diagnostic holds at most {DIAGNOSTIC_LENGTH} answers")
        return v

    @property
    def phase(self) -> DiagnosticPhase:
        if len(self.answers) >= DIAGNOSTIC_LENGTH:
            return DiagnosticPhase.COMPLETED
        return DiagnosticPhase.AWAITING_ITEM

    @property
    def item_index(self) -> int:
        """Zero-based index of the item being awaited."""
        return len(self.answers)

    @property
    def correct_so_far(self) -> int:
        return sum(1 for answer in self.answers if answer)


class ProgressRecord(BaseModel):
    """Long-lived per-learner XP and streak state."""

    model_config = ConfigDict(frozen=True)

    total_xp: int = Field(default=0, ge=0)
    current_level: int = Field(default=1, ge=1)
    streak_days: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_activity_date: Optional[date] = None


class ProblemOutcome(BaseModel):
    """Result of a single solved problem."""

    model_config = ConfigDict(frozen=True)

    correct: bool
    time_spent_seconds: float = Field(ge=0)
    first_try: bool = False
    difficulty_tier: Optional[CommitmentTier] = None
    streak_count: int = Field(default=0, ge=0)
    streak_milestone: Optional[int] = Field(default=None, ge=1)


class SessionOutcome(BaseModel):
    """Aggregate result of a practice session."""

    model_config = ConfigDict(frozen=True)

    total_problems: int = Field(ge=0)
    correct_problems: int = Field(ge=0)
    time_spent_minutes: float = Field(ge=0)
    in_flow_state: bool = False
    daily_first: bool = False
    current_streak: int = Field(default=0, ge=0)
    streak_milestone: Optional[int] = Field(default=None, ge=1)

    @property
    def accuracy(self) -> float:
        if self.total_problems == 0:
            return 0.0
        return self.correct_problems / self.total_problems


class XpBonus(BaseModel):
    """One line item of an XP award."""

    model_config = ConfigDict(frozen=True)

    kind: str
    description: str
    amount: int = Field(ge=0)


class XpGainResult(BaseModel):
    """Outcome of applying an award to a progress record."""

    xp_gained: int = Field(ge=0)
    bonuses: List[XpBonus] = Field(default_factory=list)
    total_xp: int = Field(ge=0)
    previous_level: int = Field(ge=1)
    new_level: int = Field(ge=1)
    leveled_up: bool
    level_title: str
    achievements_unlocked: List[str] = Field(default_factory=list)


class LevelProgress(BaseModel):
    """Position of a total XP value inside its level band."""

    level: int
    title: str
    xp_into_level: int
    xp_to_next_level: int
    percentage: float


class StreakUpdate(BaseModel):
    """Result of recording an activity day."""

    model_config = ConfigDict(frozen=True)

    new_streak_days: int = Field(ge=1)
    longest_streak: int = Field(ge=1)
    is_first_today: bool
    streak_broken: bool = False
    milestone_reached: Optional[int] = None


class IrtParameters(BaseModel):
    """3PL item parameters."""

    a: float = Field(default=1.0, gt=0)
    b: float
    c: float = Field(default=0.2, ge=0, lt=1)


class ProblemRequest(BaseModel):
    """What to ask the content generator for."""

    topic: str
    target_b: float
    grade: int = Field(ge=MIN_GRADE, le=MAX_GRADE)
    theta: float
    tier: Optional[CommitmentTier] = None
    previous_problems: List[str] = Field(default_factory=list)
