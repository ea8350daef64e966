import datetime as dt

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.database import init_db
from app.models import WordProgress
from app.repository import ProgressRepository

TODAY = dt.date(2026, 3, 14)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        yield session


@pytest.fixture
def repo(db):
    return ProgressRepository(db)


@pytest.fixture
def today():
    return TODAY


async def set_daily_word_goal(repo: ProgressRepository, user_id: str, goal: int) -> None:
    await repo.upsert_app_settings(user_id, daily_word_goal=goal)


async def add_mastered_words(repo: ProgressRepository, user_id: str, count: int, tier: int = 100) -> None:
    await repo.ensure_profile(user_id)
    repo.db.add_all(
        WordProgress(
            user_id=user_id,
            word=f"word{i}",
            times_practiced=5,
            times_correct=5,
            mastery_level=tier,
        )
        for i in range(count)
    )
    await repo.db.commit()
