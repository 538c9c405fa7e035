"""Progression service: learner state, engines and persistence in one place."""

import asyncio
import weakref
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import AsyncIterator, Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker
import structlog

from app.clients.content_generator import ContentGeneratorClient
from app.core.config import settings
from app.core.database import AsyncSessionLocal
from app.core.exceptions import DuplicateEventError, ExternalUnavailableError, NotFoundError
from app.gamification.achievement_engine import AchievementEngine, achievement_engine
from app.gamification.streak import STREAK_MILESTONES, StreakTracker, streak_tracker
from app.gamification.xp_engine import XpEngine, level_progress, xp_engine
from app.irt import ability as estimator
from app.irt.difficulty import TIER_PROFILES, diagnostic_topic, select_diagnostic_item, select_next
from app.models.progress import LearnerProgress
from app.schemas.achievements import StatsSnapshot
from app.schemas.api import (
    AchievementProgressResponse,
    DiagnosticStatusResponse,
    ImmersionResponse,
    NextProblemResponse,
    ProblemSolvedRequest,
    ProblemSolvedResponse,
    ProgressResponse,
    SessionCompleteRequest,
    SessionCompleteResponse,
    StreakResponse,
)
from app.schemas.progression import (
    AbilityState,
    CommitmentTier,
    DiagnosticPhase,
    DiagnosticRun,
    ProblemOutcome,
    SessionOutcome,
    StreakUpdate,
)
from app.services.repository import ProgressRepository

logger = structlog.get_logger()


class ProgressionService:
    """Runs the progression engines against stored learner state.

    Mutating calls for one learner are serialized by an in-process lock and
    each runs in a single transaction. Event ids are recorded in the same
    transaction, so a retried event is rejected instead of applied twice.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        content_client: Optional[ContentGeneratorClient] = None,
        xp: XpEngine = xp_engine,
        achievements: AchievementEngine = achievement_engine,
        streaks: StreakTracker = streak_tracker,
        clock: Callable[[], date] = date.today,
    ):
        self.session_factory = session_factory
        self.content_client = content_client
        self.xp = xp
        self.achievements = achievements
        self.streaks = streaks
        self.clock = clock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, learner_id: str) -> asyncio.Lock:
        lock = self._locks.get(learner_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[learner_id] = lock
        return lock

    @asynccontextmanager
    async def _unit_of_work(self, learner_id: str) -> AsyncIterator[ProgressRepository]:
        """Locked transaction for one learner; commits on success."""
        lock = self._lock_for(learner_id)
        async with lock:
            async with self.session_factory() as db:
                try:
                    yield ProgressRepository(db)
                    await db.commit()
                except IntegrityError as e:
                    await db.rollback()
                    logger.warning("Conflicting write rejected", learner_id=learner_id, error=str(e.orig))
                    raise DuplicateEventError(
                        "Update conflicted with an earlier write",
                        {"learner_id": learner_id},
                    ) from e
                except Exception:
                    await db.rollback()
                    raise

    @asynccontextmanager
    async def _reader(self) -> AsyncIterator[ProgressRepository]:
        async with self.session_factory() as db:
            yield ProgressRepository(db)

    def _require_client(self) -> ContentGeneratorClient:
        if self.content_client is None:
            raise ExternalUnavailableError("Content generator is not configured")
        return self.content_client

    # Diagnostic

    def _diagnostic_status(
        self,
        learner_id: str,
        run: DiagnosticRun,
        ability: Optional[AbilityState] = None,
    ) -> DiagnosticStatusResponse:
        completed = run.phase is DiagnosticPhase.COMPLETED
        return DiagnosticStatusResponse(
            learner_id=learner_id,
            grade=run.grade,
            phase=run.phase,
            answered=len(run.answers),
            correct_so_far=run.correct_so_far,
            next_item=None if completed else select_diagnostic_item(run),
            ability=ability,
            ability_description=estimator.describe_ability(ability.theta) if ability else None,
        )

    async def start_diagnostic(self, learner_id: str, grade: int) -> DiagnosticStatusResponse:
        """Begin (or restart) the ten-item diagnostic."""
        run = estimator.start_diagnostic(grade)
        async with self._unit_of_work(learner_id) as repo:
            await repo.save_diagnostic(learner_id, run)

        logger.info("Diagnostic started", learner_id=learner_id, grade=grade)
        return self._diagnostic_status(learner_id, run)

    async def get_diagnostic(self, learner_id: str) -> DiagnosticStatusResponse:
        async with self._reader() as repo:
            run = await repo.get_diagnostic(learner_id)
            if run is None:
                raise NotFoundError("No diagnostic for learner", {"learner_id": learner_id})
            ability = await repo.get_ability(learner_id) if run.phase is DiagnosticPhase.COMPLETED else None
        return self._diagnostic_status(learner_id, run, ability)

    async def diagnostic_problem(self, learner_id: str) -> NextProblemResponse:
        """Generate the problem for the diagnostic item being awaited."""
        client = self._require_client()
        async with self._reader() as repo:
            run = await repo.get_diagnostic(learner_id)
        if run is None:
            raise NotFoundError("No diagnostic for learner", {"learner_id": learner_id})

        request = select_diagnostic_item(run)
        problem = await client.generate_problem(request)
        return NextProblemResponse(request=request, problem=problem)

    async def submit_diagnostic_answer(
        self,
        learner_id: str,
        correct: bool,
        topic: Optional[str] = None,
        problem_text: Optional[str] = None,
    ) -> DiagnosticStatusResponse:
        """Append an answer; the tenth answer produces the ability estimate."""
        async with self._unit_of_work(learner_id) as repo:
            run = await repo.get_diagnostic(learner_id)
            if run is None:
                raise NotFoundError("No diagnostic for learner", {"learner_id": learner_id})

            asked = topic or diagnostic_topic(run.item_index, run.grade)
            run = estimator.record_answer(run, correct, asked, problem_text)
            await repo.save_diagnostic(learner_id, run)

            ability = None
            if run.phase is DiagnosticPhase.COMPLETED:
                ability = estimator.finalize(run)
                await repo.save_ability(learner_id, ability, source="diagnostic")

        if ability:
            logger.info(
                "Diagnostic completed",
                learner_id=learner_id,
                theta=ability.theta,
                estimated_level=ability.estimated_level,
            )
        return self._diagnostic_status(learner_id, run, ability)

    async def reset_diagnostic(self, learner_id: str) -> None:
        """Discard the diagnostic run and the ability estimate it produced."""
        async with self._unit_of_work(learner_id) as repo:
            removed = await repo.delete_diagnostic(learner_id)
            if not removed:
                raise NotFoundError("No diagnostic for learner", {"learner_id": learner_id})
            await repo.delete_ability(learner_id)

        logger.info("Diagnostic reset", learner_id=learner_id)

    # Problem selection

    async def _ability_for(self, learner_id: str) -> AbilityState:
        async with self._reader() as repo:
            ability = await repo.get_ability(learner_id)
        if ability is None:
            raise NotFoundError(
                "No ability estimate; complete the diagnostic first",
                {"learner_id": learner_id},
            )
        return ability

    async def next_problem(
        self,
        learner_id: str,
        tier: Optional[CommitmentTier] = None,
        topic: Optional[str] = None,
        previous_problems: Optional[List[str]] = None,
    ) -> NextProblemResponse:
        client = self._require_client()
        ability = await self._ability_for(learner_id)

        request = select_next(ability, tier=tier, avoid=previous_problems or (), topic=topic)
        problem = await client.generate_problem(request)
        return NextProblemResponse(request=request, problem=problem)

    async def immersion_problem(
        self,
        learner_id: str,
        tier: CommitmentTier,
        topic: Optional[str] = None,
    ) -> ImmersionResponse:
        client = self._require_client()
        ability = await self._ability_for(learner_id)

        request = select_next(ability, tier=tier, topic=topic)
        profile = TIER_PROFILES[tier]
        # The generator applies the tier's grade boost itself
        problem = await client.generate_immersion_problem(ability.grade, ability.theta, tier, topic)
        return ImmersionResponse(request=request, steps=profile.steps, label=profile.label, problem=problem)

    # Activity

    def _apply_streak(self, row: LearnerProgress, today: date) -> StreakUpdate:
        update = self.streaks.record_activity(
            row.last_activity_date,
            today,
            row.streak_days,
            row.longest_streak,
        )
        if update.is_first_today:
            row.total_active_days += 1
            if update.new_streak_days == 1:
                row.streak_started_date = today
        row.streak_days = update.new_streak_days
        row.longest_streak = update.longest_streak
        row.last_activity_date = today
        return update

    async def _persist_unlocks(self, repo: ProgressRepository, learner_id: str, unlocked: List[str]) -> None:
        if unlocked:
            rewards = [(a, self.achievements.get(a).xp_reward) for a in unlocked]
            await repo.add_unlocks(learner_id, rewards)

    async def record_problem(self, learner_id: str, event: ProblemSolvedRequest) -> ProblemSolvedResponse:
        """Apply one solved problem: streak, counters, XP, achievements, ability."""
        today = self.clock()
        outcome = ProblemOutcome(
            correct=event.correct,
            time_spent_seconds=event.time_spent_seconds,
            first_try=event.first_try,
            difficulty_tier=event.difficulty_tier,
            streak_count=event.streak_count,
        )

        async with self._unit_of_work(learner_id) as repo:
            processed = await repo.claim_event(learner_id, event.event_id, "problem_solved")
            row = await repo.get_or_create_progress(learner_id)
            progress = repo.to_progress_record(row)

            streak = self._apply_streak(row, today)
            outcome = outcome.model_copy(update={"streak_milestone": streak.milestone_reached})
            row.problems_attempted += 1
            if outcome.correct:
                row.problems_solved += 1
                row.max_correct_streak = max(row.max_correct_streak, outcome.streak_count)
                if outcome.time_spent_seconds <= settings.XP_PROBLEM_FAST_SECONDS:
                    row.fast_solves += 1

            unlocked = await repo.unlocked_achievements(learner_id)
            result = self.xp.on_problem_solved(progress, outcome, repo.to_stats(row), unlocked)

            row.total_xp = result.total_xp
            row.current_level = result.new_level
            processed.xp_awarded = result.xp_gained
            await self._persist_unlocks(repo, learner_id, result.achievements_unlocked)
            await repo.bump_daily_stat(
                learner_id,
                today,
                problems_attempted=1,
                problems_correct=1 if outcome.correct else 0,
                xp_earned=result.xp_gained,
            )

            ability = None
            if event.item is not None:
                current = await repo.get_ability(learner_id)
                if current is not None:
                    ability = estimator.refine(current, event.item, outcome.correct)
                    await repo.save_ability(learner_id, ability, source="practice")

        logger.info(
            "Problem recorded",
            learner_id=learner_id,
            event_id=event.event_id,
            correct=outcome.correct,
            xp_gained=result.xp_gained,
            level=result.new_level,
            achievements=result.achievements_unlocked,
        )
        return ProblemSolvedResponse(xp=result, streak=streak, ability=ability)

    async def complete_session(self, learner_id: str, event: SessionCompleteRequest) -> SessionCompleteResponse:
        """Apply a finished practice session."""
        today = self.clock()

        async with self._unit_of_work(learner_id) as repo:
            processed = await repo.claim_event(learner_id, event.event_id, "session_complete")
            row = await repo.get_or_create_progress(learner_id)
            progress = repo.to_progress_record(row)

            streak = self._apply_streak(row, today)
            daily_first = row.last_session_date != today
            row.last_session_date = today

            outcome = SessionOutcome(
                total_problems=event.total_problems,
                correct_problems=event.correct_problems,
                time_spent_minutes=event.time_spent_minutes,
                in_flow_state=event.in_flow_state,
                daily_first=daily_first,
                current_streak=streak.new_streak_days,
                streak_milestone=streak.milestone_reached,
            )

            row.sessions_completed += 1
            row.study_minutes += outcome.time_spent_minutes
            if outcome.total_problems > 0 and outcome.correct_problems == outcome.total_problems:
                row.perfect_sessions += 1
            if self.xp.is_flow_session(outcome):
                row.flow_sessions += 1

            unlocked = await repo.unlocked_achievements(learner_id)
            result = self.xp.on_session_complete(progress, outcome, repo.to_stats(row), unlocked)

            row.total_xp = result.total_xp
            row.current_level = result.new_level
            processed.xp_awarded = result.xp_gained
            await self._persist_unlocks(repo, learner_id, result.achievements_unlocked)
            await repo.add_session_stat(
                learner_id,
                event.event_id,
                today,
                outcome.total_problems,
                outcome.correct_problems,
                outcome.time_spent_minutes,
                outcome.in_flow_state,
                result.xp_gained,
            )
            await repo.bump_daily_stat(
                learner_id,
                today,
                sessions_completed=1,
                study_minutes=outcome.time_spent_minutes,
                xp_earned=result.xp_gained,
            )

        logger.info(
            "Session completed",
            learner_id=learner_id,
            event_id=event.event_id,
            xp_gained=result.xp_gained,
            level=result.new_level,
            leveled_up=result.leveled_up,
            achievements=result.achievements_unlocked,
        )
        return SessionCompleteResponse(xp=result, streak=streak, daily_first=daily_first)

    # Read side

    async def get_progress(self, learner_id: str) -> ProgressResponse:
        async with self._unit_of_work(learner_id) as repo:
            row = await repo.get_or_create_progress(learner_id)
            ability = await repo.get_ability(learner_id)
            unlocked = await repo.unlocked_achievements(learner_id)

            return ProgressResponse(
                learner_id=learner_id,
                total_xp=row.total_xp,
                level=level_progress(row.total_xp),
                streak_days=self.streaks.streak_as_of(row.streak_days, row.last_activity_date, self.clock()),
                longest_streak=row.longest_streak,
                last_activity_date=row.last_activity_date,
                problems_attempted=row.problems_attempted,
                problems_solved=row.problems_solved,
                sessions_completed=row.sessions_completed,
                average_accuracy=repo.average_accuracy(row),
                study_minutes=row.study_minutes,
                ability=ability,
                achievements_unlocked=len(unlocked),
            )

    async def get_streak(self, learner_id: str) -> StreakResponse:
        today = self.clock()
        async with self._reader() as repo:
            row = await repo.get_progress(learner_id)
            dates = await repo.activity_dates(learner_id, today - timedelta(days=6))

        if row is None:
            raise NotFoundError("No activity recorded for learner", {"learner_id": learner_id})

        current = self.streaks.streak_as_of(row.streak_days, row.last_activity_date, today)
        return StreakResponse(
            learner_id=learner_id,
            current_streak=current,
            longest_streak=row.longest_streak,
            last_activity_date=row.last_activity_date,
            is_first_activity_today=self.streaks.is_first_activity_today(row.last_activity_date, today),
            weekly_activity=self.streaks.weekly_activity(dates, today),
            next_milestone=next((m for m in STREAK_MILESTONES if m > current), None),
        )

    async def achievement_progress(self, learner_id: str) -> List[AchievementProgressResponse]:
        async with self._reader() as repo:
            row = await repo.get_progress(learner_id)
            unlocked = await repo.unlocked_achievements(learner_id)

        stats = repo.to_stats(row) if row is not None else StatsSnapshot()
        entries = self.achievements.progress(stats, unlocked)

        responses = []
        for entry in entries:
            definition = self.achievements.get(entry["achievement_id"])
            responses.append(AchievementProgressResponse(
                id=definition.id.value,
                name=definition.name,
                description=definition.description,
                category=definition.category,
                tier=definition.tier,
                xp_reward=definition.xp_reward,
                threshold=definition.threshold,
                current=entry["current"],
                percentage=entry["percentage"],
                unlocked=entry["unlocked"],
            ))
        return responses
