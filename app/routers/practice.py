"""Practice endpoints: problem selection and activity events."""

from fastapi import APIRouter, Depends
import structlog

from app.core.dependencies import get_progression_service
from app.schemas.api import (
    ImmersionRequest,
    ImmersionResponse,
    NextProblemRequest,
    NextProblemResponse,
    ProblemSolvedRequest,
    ProblemSolvedResponse,
    SessionCompleteRequest,
    SessionCompleteResponse,
)
from app.services.progression import ProgressionService

logger = structlog.get_logger()
router = APIRouter()


@router.post("/{learner_id}/problems/next", response_model=NextProblemResponse)
async def next_problem(
    learner_id: str,
    body: NextProblemRequest,
    service: ProgressionService = Depends(get_progression_service)
):
    """Generate a practice problem matched to the learner's ability."""
    return await service.next_problem(
        learner_id,
        tier=body.tier,
        topic=body.topic,
        previous_problems=body.previous_problems
    )


@router.post("/{learner_id}/problems/immersion", response_model=ImmersionResponse)
async def immersion_problem(
    learner_id: str,
    body: ImmersionRequest,
    service: ProgressionService = Depends(get_progression_service)
):
    """Generate a long-form problem for a commitment tier."""
    return await service.immersion_problem(learner_id, body.tier, topic=body.topic)


@router.post("/{learner_id}/problems/solved", response_model=ProblemSolvedResponse)
async def problem_solved(
    learner_id: str,
    body: ProblemSolvedRequest,
    service: ProgressionService = Depends(get_progression_service)
):
    """Record a solved problem and award XP."""
    return await service.record_problem(learner_id, body)


@router.post("/{learner_id}/sessions/complete", response_model=SessionCompleteResponse)
async def session_complete(
    learner_id: str,
    body: SessionCompleteRequest,
    service: ProgressionService = Depends(get_progression_service)
):
    """Record a finished session and award XP."""
    return await service.complete_session(learner_id, body)
