"""Achievement evaluation against a cumulative stats snapshot."""

from typing import Dict, Iterable, List, Optional, Sequence, Set

import structlog

from app.core.exceptions import InvalidInputError
from app.gamification.catalog import ACHIEVEMENT_CATALOG
from app.schemas.achievements import (
    AchievementCategory,
    AchievementDefinition,
    AchievementId,
    AchievementTier,
    StatsSnapshot,
)

logger = structlog.get_logger()


class AchievementEngine:
    """Engine for checking which achievements a learner has newly earned."""

    def __init__(self, catalog: Sequence[AchievementDefinition] = ACHIEVEMENT_CATALOG):
        self.catalog = tuple(catalog)
        self._by_id: Dict[str, AchievementDefinition] = {}
        for definition in self.catalog:
            if definition.id.value in self._by_id:
                raise ValueError(f"duplicate achievement id {definition.id.value}")
            self._by_id[definition.id.value] = definition

    def get(self, achievement_id: str) -> AchievementDefinition:
        try:
            return self._by_id[AchievementId(achievement_id).value]
        except (ValueError, KeyError):
            raise InvalidInputError("unknown achievement id", {"achievement_id": achievement_id})

    def _normalize(self, ids: Iterable[str]) -> Set[str]:
        return {self.get(achievement_id).id.value for achievement_id in ids}

    def evaluate(self, stats: StatsSnapshot, already_unlocked: Iterable[str] = ()) -> List[str]:
        """Ids whose condition holds and that are not yet unlocked.

        Returned in catalog order. The caller grants each id's ``xp_reward``
        once, when it persists the unlock.
        """
        unlocked = self._normalize(already_unlocked)
        earned = [
            definition.id.value
            for definition in self.catalog
            if definition.id.value not in unlocked and definition.condition(stats)
        ]
        if earned:
            logger.debug("Achievements earned", achievements=earned)
        return earned

    def xp_reward(self, achievement_ids: Iterable[str]) -> int:
        return sum(self.get(achievement_id).xp_reward for achievement_id in achievement_ids)

    def by_category(self, category: AchievementCategory) -> List[AchievementDefinition]:
        return [d for d in self.catalog if d.category == category]

    def by_tier(self, tier: AchievementTier) -> List[AchievementDefinition]:
        return [d for d in self.catalog if d.tier == tier]

    def progress(
        self,
        stats: StatsSnapshot,
        unlocked: Optional[Iterable[str]] = None,
    ) -> List[Dict[str, object]]:
        """Per-achievement progress toward its threshold, in catalog order."""
        unlocked_ids = self._normalize(unlocked or ())
        entries = []
        for definition in self.catalog:
            current = stats.value(definition.metric)
            if definition.condition(stats):
                percentage = 100
            else:
                percentage = min(99, int(current / definition.threshold * 100))
            entries.append({
                "achievement_id": definition.id.value,
                "current": current,
                "required": definition.threshold,
                "percentage": percentage,
                "unlocked": definition.id.value in unlocked_ids,
            })
        return entries


achievement_engine = AchievementEngine()
