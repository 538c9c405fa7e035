"""Request and response bodies for the HTTP API."""

from datetime import date
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.achievements import AchievementCategory, AchievementTier
from app.schemas.progression import (
    DIAGNOSTIC_LENGTH,
    MAX_GRADE,
    MIN_GRADE,
    AbilityState,
    CommitmentTier,
    DiagnosticPhase,
    IrtParameters,
    LevelProgress,
    ProblemRequest,
    StreakUpdate,
    XpGainResult,
)


# Diagnostic

class StartDiagnosticRequest(BaseModel):
    grade: int = Field(ge=MIN_GRADE, le=MAX_GRADE)


class DiagnosticAnswerRequest(BaseModel):
    correct: bool
    topic: Optional[str] = None
    problem_text: Optional[str] = None


class DiagnosticStatusResponse(BaseModel):
    learner_id: str
    grade: int
    phase: DiagnosticPhase
    answered: int
    correct_so_far: int
    total_items: int = DIAGNOSTIC_LENGTH
    next_item: Optional[ProblemRequest] = None
    ability: Optional[AbilityState] = None
    ability_description: Optional[Dict[str, Any]] = None


# Content generator payloads

class GeneratedProblem(BaseModel):
    """Multiple-choice problem returned by the generator."""

    content: str
    options: List[str] = Field(default_factory=list)
    correct_answer: Union[str, int, float]
    topic: str
    irt: IrtParameters


class ImmersionProblem(BaseModel):
    """Long-form problem returned by the generator."""

    model_config = ConfigDict(populate_by_name=True)

    content: str
    hints: List[str] = Field(default_factory=list)
    solution: str = ""
    topic: str
    estimated_time: Optional[str] = Field(default=None, validation_alias="estimatedTime")


# Practice

class NextProblemRequest(BaseModel):
    tier: Optional[CommitmentTier] = None
    topic: Optional[str] = None
    previous_problems: List[str] = Field(default_factory=list)


class NextProblemResponse(BaseModel):
    request: ProblemRequest
    problem: GeneratedProblem


class ImmersionRequest(BaseModel):
    tier: CommitmentTier = CommitmentTier.ONE_HOUR
    topic: Optional[str] = None


class ImmersionResponse(BaseModel):
    request: ProblemRequest
    steps: int
    label: str
    problem: ImmersionProblem


class ProblemSolvedRequest(BaseModel):
    event_id: str = Field(min_length=1, max_length=128)
    correct: bool
    time_spent_seconds: float = Field(ge=0)
    first_try: bool = False
    difficulty_tier: Optional[CommitmentTier] = None
    streak_count: int = Field(default=0, ge=0)
    item: Optional[IrtParameters] = None


class ProblemSolvedResponse(BaseModel):
    xp: XpGainResult
    streak: StreakUpdate
    ability: Optional[AbilityState] = None


class SessionCompleteRequest(BaseModel):
    event_id: str = Field(min_length=1, max_length=128)
    total_problems: int = Field(ge=0)
    correct_problems: int = Field(ge=0)
    time_spent_minutes: float = Field(ge=0)
    in_flow_state: bool = False


class SessionCompleteResponse(BaseModel):
    xp: XpGainResult
    streak: StreakUpdate
    daily_first: bool


# Progress

class ProgressResponse(BaseModel):
    learner_id: str
    total_xp: int
    level: LevelProgress
    streak_days: int
    longest_streak: int
    last_activity_date: Optional[date] = None
    problems_attempted: int
    problems_solved: int
    sessions_completed: int
    average_accuracy: float
    study_minutes: float
    ability: Optional[AbilityState] = None
    achievements_unlocked: int


class StreakResponse(BaseModel):
    learner_id: str
    current_streak: int
    longest_streak: int
    last_activity_date: Optional[date] = None
    is_first_activity_today: bool
    weekly_activity: List[bool]
    next_milestone: Optional[int] = None


# Achievements

class AchievementResponse(BaseModel):
    id: str
    name: str
    description: str
    category: AchievementCategory
    tier: AchievementTier
    xp_reward: int
    threshold: float


class AchievementProgressResponse(AchievementResponse):
    current: float
    percentage: int
    unlocked: bool
