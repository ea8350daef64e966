"""Consecutive-day practice streaks.

A streak advances at most once per calendar day, the first time the day's
word goal is met. Streaks are reset by a scheduled job rather than during
practice: :func:`reset_lapsed_streaks` runs shortly after midnight and zeroes
the streak of anyone who did not advance it the previous day.
"""

from __future__ import annotations

import datetime as dt
import logging
from zoneinfo import ZoneInfo

from app.config import settings
from app.database import async_session
from app.repository import ProgressRepository

logger = logging.getLogger(__name__)


async def advance_streak(
    repo: ProgressRepository,
    user_id: str,
    today: dt.date,
) -> bool:
    """Advance the user's streak if today's word goal is complete.

    Returns True if the streak moved. Calling this again later the same day
    is a no-op because the last advanced date is stored on the profile.
    """
    goals = await repo.get_daily_goals(user_id, today)
    words_goal = next((g for g in goals if g.goal_type == "words"), None)
    if words_goal is None or not words_goal.completed:
        return False

    profile = await repo.ensure_profile(user_id)
    if profile.streak_last_advanced_date == today:
        return False

    new_streak = profile.current_streak + 1
    await repo.upsert_profile(
        user_id,
        current_streak=new_streak,
        longest_streak=max(profile.longest_streak, new_streak),
        streak_last_advanced_date=today,
    )
    logger.info("User %s streak advanced to %d day(s)", user_id, new_streak)
    return True


async def reset_lapsed_streaks(today: dt.date | None = None) -> int:
    """Scheduled job: zero streaks that were not advanced yesterday or today."""
    if today is None:
        today = dt.datetime.now(ZoneInfo(settings.streak_reset_timezone)).date()

    async with async_session() as db:
        reset = await ProgressRepository(db).reset_lapsed_streaks(today)

    logger.info("Streak reset for %s: %d profile(s) reset", today.isoformat(), reset)
    return reset
