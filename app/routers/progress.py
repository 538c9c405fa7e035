"""Progress tracking endpoints."""

from fastapi import APIRouter, Depends
import structlog

from app.core.dependencies import get_progression_service
from app.schemas.api import ProgressResponse, StreakResponse
from app.services.progression import ProgressionService

logger = structlog.get_logger()
router = APIRouter()


@router.get("/{learner_id}", response_model=ProgressResponse)
async def get_learner_progress(
    learner_id: str,
    service: ProgressionService = Depends(get_progression_service)
):
    """Get XP, level, streak and ability for a learner."""
    return await service.get_progress(learner_id)


@router.get("/{learner_id}/streak", response_model=StreakResponse)
async def get_learner_streak(
    learner_id: str,
    service: ProgressionService = Depends(get_progression_service)
):
    """Get streak details and the last seven days of activity."""
    return await service.get_streak(learner_id)
