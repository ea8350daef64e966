"""Async SQLAlchemy engine and session helpers."""

from __future__ import annotations

import logging

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(settings.database_url, echo=False)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """FastAPI dependency that yields an async DB session."""
    async with async_session() as session:
        yield session


def _missing_profile_columns(sync_conn) -> set[str]:
    columns = {c["name"] for c in inspect(sync_conn).get_columns("profiles")}
    return {"streak_last_advanced_date"} - columns


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create all tables (idempotent) and run lightweight migrations."""
    async with (bind or engine).begin() as conn:
        from app.models import (  # noqa: F401 – import so Base knows about them
            Achievement,
            AppSettings,
            DailyGoal,
            LearningSession,
            Profile,
            WordProgress,
        )
        await conn.run_sync(Base.metadata.create_all)

        # ---- Lightweight column migrations ----
        # Profiles created before streak advancement was date-gated
        missing = await conn.run_sync(_missing_profile_columns)
        if "streak_last_advanced_date" in missing:
            await conn.execute(
                text("ALTER TABLE profiles ADD COLUMN streak_last_advanced_date DATE")
            )
            logger.info("Added profiles.streak_last_advanced_date column")
