"""Achievement endpoints."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_progression_service
from app.gamification.achievement_engine import achievement_engine
from app.schemas.achievements import AchievementCategory, AchievementTier
from app.schemas.api import AchievementProgressResponse, AchievementResponse
from app.services.progression import ProgressionService

router = APIRouter()


@router.get("", response_model=List[AchievementResponse])
async def list_achievements(
    category: Optional[AchievementCategory] = Query(None),
    tier: Optional[AchievementTier] = Query(None)
):
    """Get the achievement catalog."""
    definitions = achievement_engine.catalog
    if category:
        definitions = achievement_engine.by_category(category)
    if tier:
        definitions = [d for d in definitions if d.tier == tier]

    return [
        AchievementResponse(
            id=d.id.value,
            name=d.name,
            description=d.description,
            category=d.category,
            tier=d.tier,
            xp_reward=d.xp_reward,
            threshold=d.threshold
        )
        for d in definitions
    ]


@router.get("/{learner_id}", response_model=List[AchievementProgressResponse])
async def get_learner_achievements(
    learner_id: str,
    unlocked_only: bool = Query(False),
    service: ProgressionService = Depends(get_progression_service)
):
    """Get a learner's progress toward every achievement."""
    entries = await service.achievement_progress(learner_id)
    if unlocked_only:
        entries = [e for e in entries if e.unlocked]
    return entries
