"""Daily word / time / accuracy goals."""

from __future__ import annotations

import datetime as dt
import logging
import math

from app.config import settings
from app.models import GOAL_TYPES, DailyGoal
from app.repository import ProgressRepository

logger = logging.getLogger(__name__)


def session_contributions(words_learned: int, practice_seconds: int, accuracy: float) -> dict[str, int]:
    """What one session adds to each goal type."""
    return {
        "words": words_learned,
        "time": practice_seconds // 60,
        "accuracy": math.floor(accuracy),
    }


def merge_goal_value(goal_type: str, current: int, contribution: int) -> int:
    """Words and time accumulate over the day; accuracy keeps the day's best."""
    if goal_type == "accuracy":
        return max(current, contribution)
    return current + contribution


async def default_targets(repo: ProgressRepository, user_id: str) -> dict[str, int]:
    return {
        "words": await repo.get_daily_word_goal(user_id),
        "time": settings.daily_time_goal_minutes,
        "accuracy": settings.daily_accuracy_goal,
    }


async def update_daily_goals(
    repo: ProgressRepository,
    user_id: str,
    words_learned: int,
    practice_seconds: int,
    accuracy: float,
    today: dt.date,
) -> list[DailyGoal]:
    """Fold a finished session into today's three goal records.

    Missing records are created with the session's contribution as their
    starting value; existing ones are read first and then written back with
    the merged value, keeping ``completed == current >= target``.
    """
    contributions = session_contributions(words_learned, practice_seconds, accuracy)
    existing = {g.goal_type: g for g in await repo.get_daily_goals(user_id, today)}
    targets = await default_targets(repo, user_id) if len(existing) < len(GOAL_TYPES) else {}

    updated: list[DailyGoal] = []
    for goal_type in GOAL_TYPES:
        goal = existing.get(goal_type)
        if goal is None:
            target = targets[goal_type]
            current = contributions[goal_type]
        else:
            target = goal.target_value
            current = merge_goal_value(goal_type, goal.current_value, contributions[goal_type])

        updated.append(
            await repo.upsert_daily_goal(
                user_id,
                goal_type,
                today,
                target_value=target,
                current_value=current,
                completed=current >= target,
            )
        )

    logger.debug(
        "User %s goals for %s: %s",
        user_id, today.isoformat(),
        ", ".join(f"{g.goal_type}={g.current_value}/{g.target_value}" for g in updated),
    )
    return updated


def goal_to_dict(goal: DailyGoal) -> dict:
    return {
        "goal_type": goal.goal_type,
        "goal_date": goal.goal_date.isoformat(),
        "target_value": goal.target_value,
        "current_value": goal.current_value,
        "completed": goal.completed,
    }
