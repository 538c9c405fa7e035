"""Learner progress and ability models."""

from datetime import datetime
from sqlalchemy import Column, String, Integer, Float, DateTime, Date, JSON, Index

from app.core.database import Base


class LearnerProgress(Base):
    """XP, streak and cumulative counters for one learner."""
    __tablename__ = "learner_progress"

    learner_id = Column(String(128), primary_key=True)
    total_xp = Column(Integer, nullable=False, default=0)
    current_level = Column(Integer, nullable=False, default=1)

    # Streak
    streak_days = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_activity_date = Column(Date)
    streak_started_date = Column(Date)
    total_active_days = Column(Integer, nullable=False, default=0)
    last_session_date = Column(Date)  # drives the daily-first session bonus

    # Cumulative counters
    problems_attempted = Column(Integer, nullable=False, default=0)
    problems_solved = Column(Integer, nullable=False, default=0)
    fast_solves = Column(Integer, nullable=False, default=0)
    max_correct_streak = Column(Integer, nullable=False, default=0)
    sessions_completed = Column(Integer, nullable=False, default=0)
    perfect_sessions = Column(Integer, nullable=False, default=0)
    flow_sessions = Column(Integer, nullable=False, default=0)
    study_minutes = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_learner_progress_xp", "total_xp"),
    )


class AbilitySnapshot(Base):
    """Latest ability estimate for a learner."""
    __tablename__ = "ability_snapshots"

    learner_id = Column(String(128), primary_key=True)
    theta = Column(Float, nullable=False)
    grade = Column(Integer, nullable=False)
    estimated_level = Column(Integer, nullable=False)
    source = Column(String, nullable=False, default="diagnostic")  # diagnostic, practice
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class DiagnosticSession(Base):
    """Diagnostic run for a learner. Kept after scoring until the diagnostic is reset."""
    __tablename__ = "diagnostic_sessions"

    learner_id = Column(String(128), primary_key=True)
    grade = Column(Integer, nullable=False)
    answers = Column(JSON, nullable=False, default=list)
    asked_topics = Column(JSON, nullable=False, default=list)
    previous_problem_texts = Column(JSON, nullable=False, default=list)
    started_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
