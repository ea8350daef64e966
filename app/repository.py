"""Data access for the progress engine.

Every write is its own unit of work: it commits before returning, so the
session-finalize steps stay independent of each other. Counters are bumped
with conditional upserts (``INSERT ... ON CONFLICT DO UPDATE``) keyed on the
natural key of each row, which keeps concurrent attempts from losing updates.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models import (
    Achievement,
    AppSettings,
    DailyGoal,
    LearningSession,
    Profile,
    WordProgress,
)
from app.services.mastery import mastery_tier, mastery_tier_clause, normalize_word

logger = logging.getLogger(__name__)


class ProgressRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self, model):
        """Dialect-specific INSERT that supports ON CONFLICT clauses."""
        if self.db.get_bind().dialect.name == "postgresql":
            return pg_insert(model)
        return sqlite_insert(model)

    async def rollback(self) -> None:
        await self.db.rollback()

    # ---- Profiles ----

    async def get_profile(self, user_id: str) -> Profile | None:
        result = await self.db.execute(
            select(Profile)
            .where(Profile.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def ensure_profile(
        self,
        user_id: str,
        email: str | None = None,
        full_name: str | None = None,
    ) -> Profile:
        """Return the user's profile, creating it (and app settings) with defaults if absent."""
        profile = await self.get_profile(user_id)
        if profile is not None:
            return profile

        await self.db.execute(
            self._insert(Profile)
            .values(id=user_id, email=email, full_name=full_name)
            .on_conflict_do_nothing(index_elements=["id"])
        )
        await self.db.execute(
            self._insert(AppSettings)
            .values(user_id=user_id, daily_word_goal=settings.default_daily_word_goal)
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        await self.db.commit()
        logger.info("Created default profile for user %s", user_id)
        return await self.get_profile(user_id)

    async def upsert_profile(self, user_id: str, **fields: Any) -> Profile:
        profile = await self.ensure_profile(user_id)
        if fields:
            await self.db.execute(
                update(Profile).where(Profile.id == user_id).values(**fields)
            )
            await self.db.commit()
            await self.db.refresh(profile)
        return profile

    async def increment_profile_stats(
        self,
        user_id: str,
        words_learned: int,
        practice_seconds: int,
        accuracy: float,
    ) -> Profile:
        """Add session totals and fold the session accuracy into the running rate."""
        profile = await self.ensure_profile(user_id)
        await self.db.execute(
            update(Profile)
            .where(Profile.id == user_id)
            .values(
                total_words_learned=Profile.total_words_learned + words_learned,
                total_practice_time=Profile.total_practice_time + practice_seconds,
                accuracy_rate=(Profile.accuracy_rate + accuracy) / 2,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(profile)
        return profile

    async def get_app_settings(self, user_id: str) -> AppSettings:
        """The user's app settings, created with defaults alongside the profile."""
        await self.ensure_profile(user_id)
        result = await self.db.execute(
            select(AppSettings)
            .where(AppSettings.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def upsert_app_settings(self, user_id: str, **fields: Any) -> AppSettings:
        await self.ensure_profile(user_id)
        values = {"daily_word_goal": settings.default_daily_word_goal, **fields}
        stmt = self._insert(AppSettings).values(user_id=user_id, **values)
        if fields:
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id"],
                set_={**fields, "updated_at": func.now()},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=["user_id"])
        await self.db.execute(stmt)
        await self.db.commit()
        return await self.get_app_settings(user_id)

    async def get_daily_word_goal(self, user_id: str) -> int:
        result = await self.db.execute(
            select(AppSettings.daily_word_goal).where(AppSettings.user_id == user_id)
        )
        goal = result.scalar_one_or_none()
        return goal or settings.default_daily_word_goal

    async def reset_lapsed_streaks(self, today: dt.date) -> int:
        """Zero the current streak of everyone who did not advance it yesterday or today."""
        cutoff = today - dt.timedelta(days=1)
        result = await self.db.execute(
            update(Profile)
            .where(Profile.current_streak > 0)
            .where(
                or_(
                    Profile.streak_last_advanced_date.is_(None),
                    Profile.streak_last_advanced_date < cutoff,
                )
            )
            .values(current_streak=0)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount or 0

    # ---- Word progress ----

    async def upsert_word_progress(
        self,
        user_id: str,
        word: str,
        difficulty: str,
        is_correct: bool,
    ) -> WordProgress:
        """Count one attempt at ``word`` and recompute its mastery tier atomically."""
        word = normalize_word(word)
        correct_inc = 1 if is_correct else 0

        stmt = self._insert(WordProgress).values(
            user_id=user_id,
            word=word,
            difficulty=difficulty,
            times_practiced=1,
            times_correct=correct_inc,
            mastery_level=mastery_tier(1, correct_inc),
            last_practiced=func.now(),
        )
        practiced = WordProgress.times_practiced + 1
        correct = WordProgress.times_correct + correct_inc
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "word"],
            set_={
                "times_practiced": practiced,
                "times_correct": correct,
                "mastery_level": mastery_tier_clause(practiced, correct),
                "last_practiced": func.now(),
            },
        ).returning(WordProgress)

        result = await self.db.scalars(stmt, execution_options={"populate_existing": True})
        record = result.one()
        await self.db.commit()
        return record

    async def get_word_progress(self, user_id: str, word: str) -> WordProgress | None:
        result = await self.db.execute(
            select(WordProgress).where(
                WordProgress.user_id == user_id,
                WordProgress.word == normalize_word(word),
            )
        )
        return result.scalar_one_or_none()

    async def count_mastered_words(self, user_id: str, min_tier: int) -> int:
        result = await self.db.execute(
            select(func.count(WordProgress.id)).where(
                WordProgress.user_id == user_id,
                WordProgress.mastery_level >= min_tier,
            )
        )
        return result.scalar_one()

    # ---- Daily goals ----

    async def get_daily_goals(self, user_id: str, goal_date: dt.date) -> list[DailyGoal]:
        result = await self.db.execute(
            select(DailyGoal)
            .where(DailyGoal.user_id == user_id, DailyGoal.goal_date == goal_date)
            .order_by(DailyGoal.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def upsert_daily_goal(
        self,
        user_id: str,
        goal_type: str,
        goal_date: dt.date,
        *,
        target_value: int,
        current_value: int,
        completed: bool,
    ) -> DailyGoal:
        fields = {
            "target_value": target_value,
            "current_value": current_value,
            "completed": completed,
        }
        stmt = (
            self._insert(DailyGoal)
            .values(user_id=user_id, goal_type=goal_type, goal_date=goal_date, **fields)
            .on_conflict_do_update(
                index_elements=["user_id", "goal_type", "goal_date"],
                set_={**fields, "updated_at": func.now()},
            )
            .returning(DailyGoal)
        )
        result = await self.db.scalars(stmt, execution_options={"populate_existing": True})
        goal = result.one()
        await self.db.commit()
        return goal

    # ---- Sessions & achievements ----

    async def insert_learning_session(
        self,
        user_id: str,
        session_type: str,
        words_practiced: list[str],
        correct_pronunciations: int,
        total_attempts: int,
        session_duration: int,
        accuracy_rate: float,
    ) -> int:
        record = LearningSession(
            user_id=user_id,
            session_type=session_type,
            words_practiced=list(words_practiced),
            correct_pronunciations=correct_pronunciations,
            total_attempts=total_attempts,
            session_duration=session_duration,
            accuracy_rate=accuracy_rate,
        )
        self.db.add(record)
        await self.db.commit()
        return record.id

    async def count_learning_sessions(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count(LearningSession.id)).where(LearningSession.user_id == user_id)
        )
        return result.scalar_one()

    async def insert_achievement(
        self,
        user_id: str,
        achievement_type: str,
        title: str,
        description: str,
        icon: str,
    ) -> Achievement:
        achievement = Achievement(
            user_id=user_id,
            achievement_type=achievement_type,
            title=title,
            description=description,
            icon=icon,
        )
        self.db.add(achievement)
        await self.db.commit()
        return achievement

    async def list_achievements(self, user_id: str, limit: int = 20) -> list[Achievement]:
        result = await self.db.execute(
            select(Achievement)
            .where(Achievement.user_id == user_id)
            .order_by(Achievement.earned_at.desc(), Achievement.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
