"""Storage adapter for learner progression state."""

from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.core.exceptions import DuplicateEventError
from app.models.analytics import DailyStat, SessionStat
from app.models.gamification import AchievementUnlock, ProcessedEvent
from app.models.progress import AbilitySnapshot, DiagnosticSession, LearnerProgress
from app.schemas.achievements import StatsSnapshot
from app.schemas.progression import AbilityState, DiagnosticRun, ProgressRecord

logger = structlog.get_logger()


class ProgressRepository:
    """Reads and writes learner rows inside the caller's transaction.

    Nothing here commits; the service owns the unit of work.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # Progress

    async def get_progress(self, learner_id: str) -> Optional[LearnerProgress]:
        result = await self.db.execute(
            select(LearnerProgress).where(LearnerProgress.learner_id == learner_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create_progress(self, learner_id: str) -> LearnerProgress:
        """Get or create the progress row for a learner."""
        progress = await self.get_progress(learner_id)

        if not progress:
            progress = LearnerProgress(
                learner_id=learner_id,
                total_xp=0,
                current_level=1,
                streak_days=0,
                longest_streak=0,
                total_active_days=0,
                problems_attempted=0,
                problems_solved=0,
                fast_solves=0,
                max_correct_streak=0,
                sessions_completed=0,
                perfect_sessions=0,
                flow_sessions=0,
                study_minutes=0.0,
            )
            self.db.add(progress)
            await self.db.flush()
            logger.info("Progress record created", learner_id=learner_id)

        return progress

    @staticmethod
    def to_progress_record(row: LearnerProgress) -> ProgressRecord:
        return ProgressRecord(
            total_xp=row.total_xp,
            current_level=row.current_level,
            streak_days=row.streak_days,
            longest_streak=row.longest_streak,
            last_activity_date=row.last_activity_date,
        )

    @staticmethod
    def average_accuracy(row: LearnerProgress) -> float:
        if not row.problems_attempted:
            return 0.0
        return round(row.problems_solved / row.problems_attempted * 100, 2)

    @classmethod
    def to_stats(cls, row: LearnerProgress) -> StatsSnapshot:
        return StatsSnapshot(
            total_xp=row.total_xp,
            level=row.current_level,
            streak_days=row.streak_days,
            longest_streak=row.longest_streak,
            problems_attempted=row.problems_attempted,
            problems_solved=row.problems_solved,
            perfect_sessions=row.perfect_sessions,
            flow_sessions=row.flow_sessions,
            fast_solves=row.fast_solves,
            max_correct_streak=row.max_correct_streak,
            average_accuracy=cls.average_accuracy(row),
            study_minutes=row.study_minutes,
            sessions_completed=row.sessions_completed,
        )

    # Ability

    async def get_ability(self, learner_id: str) -> Optional[AbilityState]:
        result = await self.db.execute(
            select(AbilitySnapshot).where(AbilitySnapshot.learner_id == learner_id)
        )
        row = result.scalar_one_or_none()
        if not row:
            return None
        return AbilityState(theta=row.theta, grade=row.grade, estimated_level=row.estimated_level)

    async def save_ability(self, learner_id: str, ability: AbilityState, source: str) -> None:
        result = await self.db.execute(
            select(AbilitySnapshot).where(AbilitySnapshot.learner_id == learner_id)
        )
        row = result.scalar_one_or_none()

        if not row:
            row = AbilitySnapshot(learner_id=learner_id)
            self.db.add(row)

        row.theta = ability.theta
        row.grade = ability.grade
        row.estimated_level = ability.estimated_level
        row.source = source
        await self.db.flush()

    async def delete_ability(self, learner_id: str) -> None:
        await self.db.execute(delete(AbilitySnapshot).where(AbilitySnapshot.learner_id == learner_id))

    # Diagnostic

    async def get_diagnostic(self, learner_id: str) -> Optional[DiagnosticRun]:
        result = await self.db.execute(
            select(DiagnosticSession).where(DiagnosticSession.learner_id == learner_id)
        )
        row = result.scalar_one_or_none()
        if not row:
            return None
        return DiagnosticRun(
            grade=row.grade,
            answers=tuple(row.answers or ()),
            asked_topics=tuple(row.asked_topics or ()),
            previous_problem_texts=frozenset(row.previous_problem_texts or ()),
        )

    async def save_diagnostic(self, learner_id: str, run: DiagnosticRun) -> None:
        result = await self.db.execute(
            select(DiagnosticSession).where(DiagnosticSession.learner_id == learner_id)
        )
        row = result.scalar_one_or_none()

        if not row:
            row = DiagnosticSession(learner_id=learner_id)
            self.db.add(row)

        # JSON columns are replaced wholesale so the change is detected
        row.grade = run.grade
        row.answers = list(run.answers)
        row.asked_topics = list(run.asked_topics)
        row.previous_problem_texts = sorted(run.previous_problem_texts)
        await self.db.flush()

    async def delete_diagnostic(self, learner_id: str) -> bool:
        result = await self.db.execute(
            delete(DiagnosticSession).where(DiagnosticSession.learner_id == learner_id)
        )
        return result.rowcount > 0

    # Achievements

    async def unlocked_achievements(self, learner_id: str) -> List[str]:
        result = await self.db.execute(
            select(AchievementUnlock.achievement_id)
            .where(AchievementUnlock.learner_id == learner_id)
            .order_by(AchievementUnlock.unlocked_at, AchievementUnlock.id)
        )
        return list(result.scalars().all())

    async def add_unlocks(self, learner_id: str, rewards: Iterable[tuple]) -> None:
        """Persist ``(achievement_id, xp_reward)`` pairs."""
        now = datetime.utcnow()
        for achievement_id, xp_reward in rewards:
            self.db.add(AchievementUnlock(
                learner_id=learner_id,
                achievement_id=achievement_id,
                xp_reward=xp_reward,
                unlocked_at=now,
            ))
        await self.db.flush()

    # Events

    async def claim_event(self, learner_id: str, event_id: str, event_type: str) -> ProcessedEvent:
        """Record an event id, refusing one already applied."""
        result = await self.db.execute(
            select(ProcessedEvent.id).where(
                ProcessedEvent.learner_id == learner_id,
                ProcessedEvent.event_id == event_id,
            )
        )
        if result.scalar_one_or_none() is not None:
            raise DuplicateEventError(
                "Event already processed",
                {"learner_id": learner_id, "event_id": event_id},
            )

        event = ProcessedEvent(learner_id=learner_id, event_id=event_id, event_type=event_type, xp_awarded=0)
        self.db.add(event)
        return event

    # Stats

    async def add_session_stat(
        self,
        learner_id: str,
        event_id: str,
        session_date: date,
        total_problems: int,
        correct_problems: int,
        time_spent_minutes: float,
        in_flow_state: bool,
        xp_earned: int,
    ) -> None:
        self.db.add(SessionStat(
            learner_id=learner_id,
            event_id=event_id,
            session_date=session_date,
            total_problems=total_problems,
            correct_problems=correct_problems,
            time_spent_minutes=time_spent_minutes,
            in_flow_state=in_flow_state,
            xp_earned=xp_earned,
        ))

    async def bump_daily_stat(
        self,
        learner_id: str,
        activity_date: date,
        problems_attempted: int = 0,
        problems_correct: int = 0,
        sessions_completed: int = 0,
        study_minutes: float = 0.0,
        xp_earned: int = 0,
    ) -> DailyStat:
        result = await self.db.execute(
            select(DailyStat).where(
                DailyStat.learner_id == learner_id,
                DailyStat.activity_date == activity_date,
            )
        )
        stat = result.scalar_one_or_none()

        if not stat:
            stat = DailyStat(
                learner_id=learner_id,
                activity_date=activity_date,
                problems_attempted=0,
                problems_correct=0,
                sessions_completed=0,
                study_minutes=0.0,
                xp_earned=0,
            )
            self.db.add(stat)

        stat.problems_attempted += problems_attempted
        stat.problems_correct += problems_correct
        stat.sessions_completed += sessions_completed
        stat.study_minutes += study_minutes
        stat.xp_earned += xp_earned
        await self.db.flush()
        return stat

    async def activity_dates(self, learner_id: str, since: date) -> List[date]:
        result = await self.db.execute(
            select(DailyStat.activity_date)
            .where(DailyStat.learner_id == learner_id, DailyStat.activity_date >= since)
            .order_by(DailyStat.activity_date)
        )
        return list(result.scalars().all())
