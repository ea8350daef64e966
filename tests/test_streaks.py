"""Tests for streak advancement and the nightly reset."""

import dataclasses
import datetime as dt
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services import streaks
from app.services.daily_goals import update_daily_goals
from app.services.streaks import advance_streak
from conftest import set_daily_word_goal

USER = "reader-1"


async def test_streak_not_advanced_without_goals(repo, today):
    await repo.ensure_profile(USER)
    assert await advance_streak(repo, USER, today) is False
    assert (await repo.get_profile(USER)).current_streak == 0


async def test_streak_not_advanced_when_goal_incomplete(repo, today):
    await repo.ensure_profile(USER)
    await update_daily_goals(repo, USER, 4, 60, 100.0, today)

    assert await advance_streak(repo, USER, today) is False
    assert (await repo.get_profile(USER)).current_streak == 0


async def test_streak_advances_once_per_day(repo, today):
    await set_daily_word_goal(repo, USER, 5)
    await update_daily_goals(repo, USER, 5, 60, 100.0, today)

    assert await advance_streak(repo, USER, today) is True
    await update_daily_goals(repo, USER, 5, 60, 100.0, today)
    assert await advance_streak(repo, USER, today) is False

    profile = await repo.get_profile(USER)
    assert profile.current_streak == 1
    assert profile.longest_streak == 1
    assert profile.streak_last_advanced_date == today


async def test_consecutive_days_extend_longest_streak(repo, today):
    await set_daily_word_goal(repo, USER, 1)
    await repo.upsert_profile(USER, current_streak=0, longest_streak=2)

    for offset in range(3):
        day = today + dt.timedelta(days=offset)
        await update_daily_goals(repo, USER, 1, 0, 0.0, day)
        assert await advance_streak(repo, USER, day) is True

    profile = await repo.get_profile(USER)
    assert profile.current_streak == 3
    assert profile.longest_streak == 3


async def test_reset_lapsed_streaks(repo, today):
    yesterday = today - dt.timedelta(days=1)
    await repo.upsert_profile(
        "active", current_streak=4, longest_streak=4, streak_last_advanced_date=yesterday
    )
    await repo.upsert_profile(
        "lapsed", current_streak=6, longest_streak=9,
        streak_last_advanced_date=today - dt.timedelta(days=3),
    )
    await repo.upsert_profile("legacy", current_streak=2, longest_streak=2)

    assert await repo.reset_lapsed_streaks(today) == 2

    active = await repo.get_profile("active")
    lapsed = await repo.get_profile("lapsed")
    legacy = await repo.get_profile("legacy")
    assert active.current_streak == 4
    assert (lapsed.current_streak, lapsed.longest_streak) == (0, 9)
    assert legacy.current_streak == 0


async def test_scheduled_reset_uses_configured_timezone(engine, repo, monkeypatch):
    tz = "Pacific/Kiritimati"
    monkeypatch.setattr(streaks, "settings", dataclasses.replace(streaks.settings, streak_reset_timezone=tz))
    monkeypatch.setattr(
        streaks, "async_session", async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    )
    local_today = dt.datetime.now(ZoneInfo(tz)).date()
    await repo.upsert_profile(
        "kept", current_streak=3, longest_streak=3,
        streak_last_advanced_date=local_today - dt.timedelta(days=1),
    )
    await repo.upsert_profile(
        "lapsed", current_streak=5, longest_streak=5,
        streak_last_advanced_date=local_today - dt.timedelta(days=2),
    )

    assert await streaks.reset_lapsed_streaks() == 1

    assert (await repo.get_profile("kept")).current_streak == 3
    lapsed = await repo.get_profile("lapsed")
    assert (lapsed.current_streak, lapsed.longest_streak) == (0, 5)
