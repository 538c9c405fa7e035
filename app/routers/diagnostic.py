"""Diagnostic test endpoints."""

from fastapi import APIRouter, Depends, Response
import structlog

from app.core.dependencies import get_progression_service
from app.schemas.api import (
    DiagnosticAnswerRequest,
    DiagnosticStatusResponse,
    NextProblemResponse,
    StartDiagnosticRequest,
)
from app.services.progression import ProgressionService

logger = structlog.get_logger()
router = APIRouter()


@router.post("/{learner_id}/start", response_model=DiagnosticStatusResponse)
async def start_diagnostic(
    learner_id: str,
    body: StartDiagnosticRequest,
    service: ProgressionService = Depends(get_progression_service)
):
    """Start or restart the diagnostic for a learner."""
    return await service.start_diagnostic(learner_id, body.grade)


@router.get("/{learner_id}", response_model=DiagnosticStatusResponse)
async def get_diagnostic(
    learner_id: str,
    service: ProgressionService = Depends(get_progression_service)
):
    """Current diagnostic state."""
    return await service.get_diagnostic(learner_id)


@router.post("/{learner_id}/item", response_model=NextProblemResponse)
async def get_diagnostic_item(
    learner_id: str,
    service: ProgressionService = Depends(get_progression_service)
):
    """Generate the problem for the next diagnostic item."""
    return await service.diagnostic_problem(learner_id)


@router.post("/{learner_id}/answer", response_model=DiagnosticStatusResponse)
async def submit_answer(
    learner_id: str,
    body: DiagnosticAnswerRequest,
    service: ProgressionService = Depends(get_progression_service)
):
    """Record an answer; the last one returns the ability estimate."""
    return await service.submit_diagnostic_answer(
        learner_id,
        body.correct,
        topic=body.topic,
        problem_text=body.problem_text
    )


@router.delete("/{learner_id}", status_code=204)
async def reset_diagnostic(
    learner_id: str,
    service: ProgressionService = Depends(get_progression_service)
):
    """Discard the diagnostic and its ability estimate."""
    await service.reset_diagnostic(learner_id)
    return Response(status_code=204)
