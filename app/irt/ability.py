"""Ability estimation: diagnostic scoring and 3PL refinement.

The diagnostic uses two separate formulas. The final theta maps accuracy on
the ten items onto [-4, 4]; the interim theta only routes the next item while
the test is still running and is never stored.
"""

import math
from typing import Dict, Iterable, Optional, Sequence

import structlog

from app.core.exceptions import InvalidInputError
from app.schemas.progression import (
    AbilityState,
    DiagnosticPhase,
    DiagnosticRun,
    IrtParameters,
    DIAGNOSTIC_LENGTH,
    MAX_GRADE,
    MAX_THETA,
    MIN_GRADE,
    MIN_THETA,
)

logger = structlog.get_logger()

THETA_LEARNING_RATE = 0.1


def clamp(value, lower, upper):
    return max(lower, min(upper, value))


def _check_grade(grade: int) -> None:
    if not isinstance(grade, int) or isinstance(grade, bool) or not MIN_GRADE <= grade <= MAX_GRADE:
        raise InvalidInputError(
            f"grade must be an integer in [{MIN_GRADE}, {MAX_GRADE}]",
            {"grade": grade},
        )


def estimate_from_diagnostic(answers: Sequence[bool], grade: int) -> AbilityState:
    """Score a completed diagnostic.

    Args:
        answers: Exactly ``DIAGNOSTIC_LENGTH`` right/wrong outcomes.
        grade: The learner's stated school grade.

    Returns:
        The ability snapshot: theta centered on 50% accuracy and an estimated
        grade level between two below and two above the stated grade.
    """
    _check_grade(grade)
    if len(answers) != DIAGNOSTIC_LENGTH:
        raise InvalidInputError(
            f"diagnostic needs exactly {DIAGNOSTIC_LENGTH} answers",
            {"answers": len(answers)},
        )

    n = len(answers)
    correct = sum(1 for answer in answers if answer)

    # (accuracy - 0.5) * 4 and accuracy * 4, kept in integer arithmetic
    theta = clamp((4 * correct - 2 * n) / n, MIN_THETA, MAX_THETA)
    raw_level = grade - 2 + (4 * correct) / n
    estimated_level = clamp(math.floor(raw_level + 0.5), MIN_GRADE, MAX_GRADE)

    return AbilityState(theta=theta, grade=grade, estimated_level=estimated_level)


def interim_theta(correct_so_far: int) -> float:
    """Routing estimate used between diagnostic items."""
    if correct_so_far < 0 or correct_so_far > DIAGNOSTIC_LENGTH:
        raise InvalidInputError("correct_so_far out of range", {"correct_so_far": correct_so_far})
    return correct_so_far * 0.4 - 1


# Diagnostic state machine

def start_diagnostic(grade: int) -> DiagnosticRun:
    _check_grade(grade)
    return DiagnosticRun(grade=grade)


def record_answer(
    run: DiagnosticRun,
    correct: bool,
    topic: str,
    problem_text: Optional[str] = None,
) -> DiagnosticRun:
    """Append one answered item, returning the advanced run."""
    if run.phase is DiagnosticPhase.COMPLETED:
        raise InvalidInputError("diagnostic already has all of its answers")

    seen = run.previous_problem_texts
    if problem_text:
        seen = seen | {problem_text}

    return DiagnosticRun(
        grade=run.grade,
        answers=run.answers + (bool(correct),),
        asked_topics=run.asked_topics + (topic,),
        previous_problem_texts=seen,
    )


def finalize(run: DiagnosticRun) -> AbilityState:
    """Convert a completed run into an ability snapshot."""
    if run.phase is not DiagnosticPhase.COMPLETED:
        raise InvalidInputError(
            "diagnostic is not complete",
            {"answered": len(run.answers), "required": DIAGNOSTIC_LENGTH},
        )
    ability = estimate_from_diagnostic(run.answers, run.grade)
    logger.debug(
        "Diagnostic finalized",
        grade=run.grade,
        correct=run.correct_so_far,
        theta=ability.theta,
        estimated_level=ability.estimated_level,
    )
    return ability


# 3PL item response model

def probability(theta: float, params: IrtParameters) -> float:
    """P(correct) = c + (1 - c) / (1 + exp(-a(theta - b)))."""
    exponent = -params.a * (theta - params.b)
    return params.c + (1 - params.c) / (1 + math.exp(exponent))


def information(theta: float, params: IrtParameters) -> float:
    """Fisher information of an item at theta."""
    p = probability(theta, params)
    q = 1 - p
    denominator = (1 - params.c) ** 2 * p
    if denominator <= 0:
        return 0.0
    return params.a ** 2 * (p - params.c) ** 2 * q / denominator


def update_theta(theta: float, params: IrtParameters, correct: bool) -> float:
    """One damped Newton-style step toward the observed response."""
    info = information(theta, params)
    if info == 0:
        return theta
    step = ((1 if correct else 0) - probability(theta, params)) / info
    return clamp(theta + step * THETA_LEARNING_RATE, MIN_THETA, MAX_THETA)


def refine(ability: AbilityState, params: IrtParameters, correct: bool) -> AbilityState:
    """New snapshot with theta moved by one practice response.

    Grade and estimated level only change with a diagnostic re-run.
    """
    return ability.model_copy(update={"theta": update_theta(ability.theta, params, correct)})


def standard_error(theta: float, answered: Iterable[IrtParameters]) -> float:
    total = sum(information(theta, params) for params in answered)
    return 1 / math.sqrt(total) if total > 0 else math.inf


def describe_ability(theta: float) -> Dict[str, object]:
    """Human-facing band and normal-CDF percentile for a theta value."""
    percentile = round(100 * 0.5 * (1 + math.erf(theta / math.sqrt(2))))

    if theta >= 2:
        level, description = "top", "Outstanding, around the top 2%."
    elif theta >= 1:
        level, description = "advanced", "Comfortably above average."
    elif theta >= 0:
        level, description = "average", "Growing steadily."
    elif theta >= -1:
        level, description = "foundation", "Building the fundamentals."
    else:
        level, description = "beginner", "Just getting started."

    return {"level": level, "percentile": percentile, "description": description}
