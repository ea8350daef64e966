"""Lifetime totals on the user profile."""

from __future__ import annotations

import logging

from app.models import Profile
from app.repository import ProgressRepository

logger = logging.getLogger(__name__)


async def update_user_stats(
    repo: ProgressRepository,
    user_id: str,
    words_learned: int,
    practice_seconds: int,
    accuracy: float,
) -> Profile:
    """Add a session's words and time to the lifetime totals.

    The accuracy rate is a two-point running average,
    ``(old_rate + accuracy) / 2``, so it leans heavily on the latest session.
    ``accuracy`` is expected in 0-100 and is not validated here.
    """
    profile = await repo.increment_profile_stats(
        user_id, words_learned, practice_seconds, accuracy
    )
    logger.debug(
        "User %s stats: words=%d time=%ds accuracy=%.2f",
        user_id, profile.total_words_learned, profile.total_practice_time, profile.accuracy_rate,
    )
    return profile
