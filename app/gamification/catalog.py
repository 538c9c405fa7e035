"""Static achievement catalog.

Order here is evaluation and display order. Every ``AchievementId`` appears
exactly once.
"""

from typing import Tuple

from app.schemas.achievements import (
    AchievementCategory as Category,
    AchievementDefinition,
    AchievementId as Id,
    AchievementTier as Tier,
    StatMetric as Metric,
)


ACCURACY_MIN_ATTEMPTS = 20


def _define(id, name, description, category, tier, xp_reward, metric, threshold, min_attempts=0):
    return AchievementDefinition(
        id=id,
        name=name,
        description=description,
        category=category,
        tier=tier,
        xp_reward=xp_reward,
        metric=metric,
        threshold=threshold,
        min_attempts=min_attempts,
    )


ACHIEVEMENT_CATALOG: Tuple[AchievementDefinition, ...] = (
    # Problems solved
    _define(Id.FIRST_PROBLEM, "First Steps", "Solved your first problem",
            Category.PROBLEMS, Tier.BRONZE, 50, Metric.PROBLEMS_SOLVED, 1),
    _define(Id.PROBLEMS_10, "Steady Learner", "Solved 10 problems",
            Category.PROBLEMS, Tier.BRONZE, 100, Metric.PROBLEMS_SOLVED, 10),
    _define(Id.PROBLEMS_50, "Problem Solver", "Solved 50 problems",
            Category.PROBLEMS, Tier.SILVER, 250, Metric.PROBLEMS_SOLVED, 50),
    _define(Id.PROBLEMS_100, "Century", "Solved 100 problems",
            Category.PROBLEMS, Tier.GOLD, 500, Metric.PROBLEMS_SOLVED, 100),
    _define(Id.PROBLEMS_500, "Math Master", "Solved 500 problems",
            Category.PROBLEMS, Tier.PLATINUM, 1500, Metric.PROBLEMS_SOLVED, 500),
    _define(Id.PROBLEMS_1000, "Legendary Learner", "Solved 1,000 problems",
            Category.PROBLEMS, Tier.DIAMOND, 3000, Metric.PROBLEMS_SOLVED, 1000),

    # Daily streaks
    _define(Id.STREAK_3, "Three in a Row", "Practiced 3 days in a row",
            Category.STREAK, Tier.BRONZE, 100, Metric.STREAK_DAYS, 3),
    _define(Id.STREAK_7, "Full Week", "Practiced 7 days in a row",
            Category.STREAK, Tier.SILVER, 300, Metric.STREAK_DAYS, 7),
    _define(Id.STREAK_30, "Month of Effort", "Practiced 30 days in a row",
            Category.STREAK, Tier.GOLD, 1000, Metric.STREAK_DAYS, 30),
    _define(Id.STREAK_100, "Hundred Days", "Practiced 100 days in a row",
            Category.STREAK, Tier.PLATINUM, 3000, Metric.STREAK_DAYS, 100),
    _define(Id.STREAK_365, "Year-Long Journey", "Practiced 365 days in a row",
            Category.STREAK, Tier.DIAMOND, 10000, Metric.STREAK_DAYS, 365),

    # Accuracy
    _define(Id.PERFECT_SESSION, "Perfect Session", "Answered every problem in a session correctly",
            Category.ACCURACY, Tier.BRONZE, 150, Metric.PERFECT_SESSIONS, 1),
    _define(Id.PERFECT_10, "Perfectionist", "Completed 10 perfect sessions",
            Category.ACCURACY, Tier.GOLD, 500, Metric.PERFECT_SESSIONS, 10),
    _define(Id.ACCURACY_90_AVG, "Sharpshooter", "Kept 90% overall accuracy over at least 20 problems",
            Category.ACCURACY, Tier.SILVER, 300, Metric.AVERAGE_ACCURACY, 90,
            min_attempts=ACCURACY_MIN_ATTEMPTS),

    # Flow
    _define(Id.FLOW_FIRST, "First Flow", "Reached a flow state for the first time",
            Category.FLOW, Tier.BRONZE, 100, Metric.FLOW_SESSIONS, 1),
    _define(Id.FLOW_10, "Focused Mind", "Reached a flow state 10 times",
            Category.FLOW, Tier.SILVER, 400, Metric.FLOW_SESSIONS, 10),
    _define(Id.FLOW_MASTER, "Flow Master", "Reached a flow state 50 times",
            Category.FLOW, Tier.GOLD, 1000, Metric.FLOW_SESSIONS, 50),

    # Speed and combos
    _define(Id.SPEED_10_FAST, "Lightning Hands", "Solved 10 problems in under 10 seconds each",
            Category.SPEED, Tier.BRONZE, 200, Metric.FAST_SOLVES, 10),
    _define(Id.COMBO_5, "Combo", "Answered 5 problems correctly in a row",
            Category.SPEED, Tier.BRONZE, 100, Metric.MAX_CORRECT_STREAK, 5),
    _define(Id.COMBO_10, "Combo x10", "Answered 10 problems correctly in a row",
            Category.SPEED, Tier.SILVER, 300, Metric.MAX_CORRECT_STREAK, 10),
    _define(Id.COMBO_20, "Combo Master", "Answered 20 problems correctly in a row",
            Category.SPEED, Tier.GOLD, 700, Metric.MAX_CORRECT_STREAK, 20),

    # Levels
    _define(Id.LEVEL_5, "Growing Learner", "Reached level 5",
            Category.MASTERY, Tier.BRONZE, 200, Metric.LEVEL, 5),
    _define(Id.LEVEL_10, "Math Challenger", "Reached level 10",
            Category.MASTERY, Tier.SILVER, 500, Metric.LEVEL, 10),
    _define(Id.LEVEL_25, "Math Expert", "Reached level 25",
            Category.MASTERY, Tier.GOLD, 1500, Metric.LEVEL, 25),
    _define(Id.LEVEL_50, "Math Sage", "Reached level 50",
            Category.MASTERY, Tier.PLATINUM, 3000, Metric.LEVEL, 50),
    _define(Id.LEVEL_100, "Math Legend", "Reached level 100",
            Category.MASTERY, Tier.DIAMOND, 10000, Metric.LEVEL, 100),

    # Study time and sessions
    _define(Id.STUDY_60_MINUTES, "Hour of Practice", "Practiced for 60 minutes in total",
            Category.STUDY, Tier.BRONZE, 100, Metric.STUDY_MINUTES, 60),
    _define(Id.STUDY_600_MINUTES, "Ten Hours In", "Practiced for 600 minutes in total",
            Category.STUDY, Tier.SILVER, 500, Metric.STUDY_MINUTES, 600),
    _define(Id.SESSIONS_10, "Regular", "Completed 10 practice sessions",
            Category.STUDY, Tier.BRONZE, 150, Metric.SESSIONS_COMPLETED, 10),
    _define(Id.SESSIONS_100, "Devoted", "Completed 100 practice sessions",
            Category.STUDY, Tier.GOLD, 1000, Metric.SESSIONS_COMPLETED, 100),

    # Total XP
    _define(Id.XP_1000, "XP Collector", "Earned 1,000 XP in total",
            Category.SPECIAL, Tier.BRONZE, 100, Metric.TOTAL_XP, 1000),
    _define(Id.XP_10000, "XP Hunter", "Earned 10,000 XP in total",
            Category.SPECIAL, Tier.SILVER, 500, Metric.TOTAL_XP, 10000),
    _define(Id.XP_100000, "XP Master", "Earned 100,000 XP in total",
            Category.SPECIAL, Tier.GOLD, 2000, Metric.TOTAL_XP, 100000),
)
