"""Data models for MathFlow Progress Service."""

from app.models.progress import LearnerProgress, AbilitySnapshot, DiagnosticSession
from app.models.gamification import AchievementUnlock, ProcessedEvent
from app.models.analytics import SessionStat, DailyStat

__all__ = [
    "LearnerProgress",
    "AbilitySnapshot",
    "DiagnosticSession",
    "AchievementUnlock",
    "ProcessedEvent",
    "SessionStat",
    "DailyStat"
]
