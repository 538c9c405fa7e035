"""Per-session and per-day aggregate stat rows."""

from datetime import datetime
from sqlalchemy import Column, String, Integer, Float, DateTime, Boolean, Date, UniqueConstraint, Index

from app.core.database import Base


class SessionStat(Base):
    """One completed practice session."""
    __tablename__ = "session_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String(128), nullable=False)
    event_id = Column(String(128), nullable=False)
    session_date = Column(Date, nullable=False)
    total_problems = Column(Integer, nullable=False, default=0)
    correct_problems = Column(Integer, nullable=False, default=0)
    time_spent_minutes = Column(Float, nullable=False, default=0.0)
    in_flow_state = Column(Boolean, nullable=False, default=False)
    xp_earned = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_session_stats_learner_date", "learner_id", "session_date"),
    )


class DailyStat(Base):
    """Activity totals for one learner on one calendar day."""
    __tablename__ = "daily_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String(128), nullable=False)
    activity_date = Column(Date, nullable=False)
    problems_attempted = Column(Integer, nullable=False, default=0)
    problems_correct = Column(Integer, nullable=False, default=0)
    sessions_completed = Column(Integer, nullable=False, default=0)
    study_minutes = Column(Float, nullable=False, default=0.0)
    xp_earned = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("learner_id", "activity_date"),
        Index("ix_daily_stats_learner_date", "learner_id", "activity_date"),
    )
