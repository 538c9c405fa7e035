"""Gamification models."""

from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, UniqueConstraint, Index

from app.core.database import Base


class AchievementUnlock(Base):
    """Achievements earned by learners."""
    __tablename__ = "achievement_unlocks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String(128), nullable=False, index=True)
    achievement_id = Column(String, nullable=False)
    xp_reward = Column(Integer, nullable=False, default=0)
    unlocked_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("learner_id", "achievement_id"),
        Index("ix_achievement_unlock_time", "unlocked_at"),
    )


class ProcessedEvent(Base):
    """Problem and session events already applied to a learner."""
    __tablename__ = "processed_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String(128), nullable=False)
    event_id = Column(String(128), nullable=False)
    event_type = Column(String, nullable=False)  # problem_solved, session_complete
    xp_awarded = Column(Integer, nullable=False, default=0)
    processed_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("learner_id", "event_id"),
    )
