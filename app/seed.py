"""Seed the database with a demo reader profile."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.repository import ProgressRepository

logger = logging.getLogger(__name__)


async def seed_demo_profile(db: AsyncSession) -> None:
    """Create the demo reader (profile + app settings) if enabled and missing."""
    if not settings.seed_demo_profile:
        return
    repo = ProgressRepository(db)
    if await repo.get_profile(settings.demo_user_id) is None:
        await repo.ensure_profile(settings.demo_user_id, full_name="Reader")
        logger.info("Seeded demo profile %s", settings.demo_user_id)
