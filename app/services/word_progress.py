"""Per-word practice tracking."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from app.models import DIFFICULTIES, WordProgress
from app.repository import ProgressRepository
from app.services.mastery import normalize_word

logger = logging.getLogger(__name__)


async def record_word_attempt(
    repo: ProgressRepository,
    user_id: str,
    word: str,
    difficulty: str,
    is_correct: bool,
) -> WordProgress | None:
    """Count one attempt at ``word`` for the user and refresh its mastery tier.

    Best effort: a failed write is logged and ``None`` is returned so the
    practice session can carry on.
    """
    word = normalize_word(word)
    if not word:
        logger.warning("Ignoring empty word attempt for user %s", user_id)
        return None
    if difficulty not in DIFFICULTIES:
        logger.warning("Unknown difficulty %r for word %r; using 'easy'", difficulty, word)
        difficulty = "easy"

    try:
        record = await repo.upsert_word_progress(user_id, word, difficulty, is_correct)
    except SQLAlchemyError:
        logger.exception("Error updating word progress for %r (user %s)", word, user_id)
        await repo.rollback()
        return None

    logger.debug(
        "Word %r: %d/%d correct, mastery %d",
        record.word, record.times_correct, record.times_practiced, record.mastery_level,
    )
    return record
