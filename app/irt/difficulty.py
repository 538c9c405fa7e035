"""Difficulty selection: commitment tiers, target b and topic rotation."""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from app.core.exceptions import InvalidInputError
from app.irt.ability import clamp, interim_theta
from app.schemas.progression import (
    AbilityState,
    CommitmentTier,
    DiagnosticPhase,
    DiagnosticRun,
    ProblemRequest,
    MAX_GRADE,
    MAX_THETA,
    MIN_THETA,
)

# Flow-zone success rate: hard enough to engage, easy enough not to frustrate
TARGET_SUCCESS_PROBABILITY = 0.7

DEFAULT_DISCRIMINATION = 1.0
DEFAULT_GUESSING = 0.2

TIER_B_STEP = 0.25

BASELINE_TOPIC = "arithmetic"

# Lowest grade at which each topic is taught
TOPIC_MIN_GRADE: Dict[str, int] = {
    "arithmetic": 1,
    "fractions": 2,
    "decimals": 3,
    "geometry": 4,
    "statistics": 5,
    "probability": 6,
    "algebra": 7,
    "functions": 8,
    "calculus": 11,
    "vectors": 11,
    "sequences": 11,
}

GRADE_TOPICS: Dict[int, Tuple[str, ...]] = {
    1: ("arithmetic",),
    2: ("arithmetic", "fractions"),
    3: ("arithmetic", "fractions", "decimals"),
    4: ("arithmetic", "fractions", "decimals", "geometry"),
    5: ("fractions", "decimals", "geometry", "statistics"),
    6: ("fractions", "decimals", "geometry", "statistics", "probability"),
    7: ("algebra", "geometry", "statistics"),
    8: ("algebra", "functions", "geometry"),
    9: ("algebra", "functions", "geometry", "statistics"),
    10: ("algebra", "functions", "geometry", "probability"),
    11: ("functions", "calculus", "vectors", "sequences"),
    12: ("calculus", "vectors", "sequences", "probability"),
}

DIAGNOSTIC_TOPIC_SEQUENCE: Tuple[str, ...] = (
    "arithmetic",
    "fractions",
    "decimals",
    "geometry",
    "algebra",
    "statistics",
    "functions",
    "probability",
    "algebra",
    "geometry",
)


@dataclass(frozen=True)
class TierProfile:
    """How a commitment tier shapes the requested item."""
    tier: CommitmentTier
    b_offset: float
    grade_boost: int
    steps: int
    label: str


TIER_PROFILES: Dict[CommitmentTier, TierProfile] = {
    tier: TierProfile(tier, tier.rank * TIER_B_STEP, boost, steps, label)
    for tier, boost, steps, label in (
        (CommitmentTier.FIVE_MINUTES, 0, 2, "basics"),
        (CommitmentTier.TEN_MINUTES, 0, 3, "application"),
        (CommitmentTier.THIRTY_MINUTES, 0, 5, "in depth"),
        (CommitmentTier.ONE_HOUR, 1, 8, "challenge"),
        (CommitmentTier.ONE_DAY, 1, 10, "exploration"),
        (CommitmentTier.THREE_DAYS, 1, 12, "project"),
        (CommitmentTier.SEVEN_DAYS, 2, 15, "cross-topic exploration"),
        (CommitmentTier.ONE_MONTH, 2, 20, "deep exploration"),
    )
}


def target_difficulty(
    theta: float,
    target_probability: float = TARGET_SUCCESS_PROBABILITY,
    discrimination: float = DEFAULT_DISCRIMINATION,
    guessing: float = DEFAULT_GUESSING,
) -> float:
    """Solve the 3PL curve for the b that gives ``target_probability`` at theta."""
    p = max(target_probability, guessing + 0.01)
    if p >= 1:
        raise InvalidInputError("target probability must be below 1", {"target_probability": target_probability})
    b = theta + math.log((1 - p) / (p - guessing)) / discrimination
    return clamp(b, MIN_THETA, MAX_THETA)


def topic_allowed(topic: str, grade: int) -> bool:
    return TOPIC_MIN_GRADE.get(topic, MAX_GRADE + 1) <= grade


def diagnostic_topic(slot: int, grade: int) -> str:
    """Topic for a diagnostic slot, substituting arithmetic below its grade."""
    if not 0 <= slot < len(DIAGNOSTIC_TOPIC_SEQUENCE):
        raise InvalidInputError("diagnostic slot out of range", {"slot": slot})
    topic = DIAGNOSTIC_TOPIC_SEQUENCE[slot]
    return topic if topic_allowed(topic, grade) else BASELINE_TOPIC


def target_grade(grade: int, tier: Optional[CommitmentTier]) -> int:
    boost = TIER_PROFILES[tier].grade_boost if tier is not None else 0
    return min(MAX_GRADE, grade + boost)


def _practice_topic(grade: int, seen: int, preferred: Optional[str]) -> str:
    if preferred and topic_allowed(preferred, grade):
        return preferred
    topics = GRADE_TOPICS[grade]
    return topics[seen % len(topics)]


def select_next(
    ability: AbilityState,
    tier: Optional[CommitmentTier] = None,
    avoid: Iterable[str] = (),
    topic: Optional[str] = None,
) -> ProblemRequest:
    """Choose topic, target b and grade for the next practice problem.

    ``avoid`` is forwarded to the generator untouched; nothing here checks
    the returned problem against it.
    """
    previous: List[str] = sorted(set(avoid))
    grade = target_grade(ability.grade, tier)
    offset = TIER_PROFILES[tier].b_offset if tier is not None else 0.0

    return ProblemRequest(
        topic=_practice_topic(grade, len(previous), topic),
        target_b=clamp(target_difficulty(ability.theta) + offset, MIN_THETA, MAX_THETA),
        grade=grade,
        theta=ability.theta,
        tier=tier,
        previous_problems=previous,
    )


def select_diagnostic_item(run: DiagnosticRun) -> ProblemRequest:
    """Request for the next diagnostic item, routed by the interim theta."""
    if run.phase is DiagnosticPhase.COMPLETED:
        raise InvalidInputError("diagnostic is already complete")

    theta = interim_theta(run.correct_so_far)
    return ProblemRequest(
        topic=diagnostic_topic(run.item_index, run.grade),
        target_b=target_difficulty(theta),
        grade=run.grade,
        theta=theta,
        previous_problems=sorted(run.previous_problem_texts),
    )
