"""Level progression engine.

Walks the level ladder against the user's current metrics, promotes the
profile when it qualifies for a higher level, and records the achievements
that go with a promotion. Levels never go down.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from app.config import settings
from app.repository import ProgressRepository
from app.services.feedback import AudioFeedback
from app.services.levels import (
    LevelMetrics,
    LevelRequirement,
    level_color,
    level_icon,
    level_title,
    progress_toward,
    qualified_level,
    requirement_for,
)

logger = logging.getLogger(__name__)

# Extra achievement for reaching these levels
MILESTONE_ACHIEVEMENTS: dict[int, dict[str, str]] = {
    5: {
        "title": "Reading Star ⭐",
        "description": "You've reached Level 5! You're becoming a reading expert!",
        "icon": "⭐",
    },
    10: {
        "title": "Reading Buddy Master 🏆",
        "description": "Amazing! You've reached the highest level! You're a true reading champion!",
        "icon": "🏆",
    },
}


@dataclass
class LevelProgress:
    level: int
    previous_level: int
    progress_percent: int
    next_requirements: LevelRequirement | None
    metrics: LevelMetrics

    @property
    def leveled_up(self) -> bool:
        return self.level > self.previous_level

    def to_dict(self) -> dict[str, Any]:
        nxt = self.next_requirements
        return {
            "level": self.level,
            "previous_level": self.previous_level,
            "leveled_up": self.leveled_up,
            "title": level_title(self.level),
            "icon": level_icon(self.level),
            "color": level_color(self.level),
            "progress_percent": self.progress_percent,
            "next_requirements": None if nxt is None else {
                "level": nxt.level,
                "min_words": nxt.min_words,
                "min_accuracy": nxt.min_accuracy,
                "min_streak_days": nxt.min_streak_days,
                "min_practice_minutes": nxt.min_practice_minutes,
                "special_requirements": list(nxt.special_requirements),
            },
            "metrics": {
                "mastered_words": self.metrics.mastered_words,
                "accuracy": self.metrics.accuracy,
                "streak_days": self.metrics.streak_days,
                "practice_minutes": self.metrics.practice_minutes,
            },
        }


async def gather_metrics(repo: ProgressRepository, user_id: str) -> tuple[int, LevelMetrics]:
    """Return the stored level and the four ladder metrics for the user."""
    profile = await repo.ensure_profile(user_id)
    mastered = await repo.count_mastered_words(user_id, settings.mastered_tier_threshold)
    metrics = LevelMetrics(
        mastered_words=mastered,
        accuracy=float(profile.accuracy_rate or 0.0),
        streak_days=profile.current_streak or 0,
        practice_minutes=(profile.total_practice_time or 0) // 60,
    )
    return profile.level or 1, metrics


async def award_level_up(
    repo: ProgressRepository,
    user_id: str,
    new_level: int,
    audio: AudioFeedback | None = None,
) -> None:
    """Record the level-up achievement, plus a milestone one for levels 5 and 10."""
    if audio is not None:
        audio.play_success()

    await repo.insert_achievement(
        user_id,
        "level_up",
        f"Level {new_level} Reached!",
        f"Congratulations! You've advanced to Level {new_level}. Keep up the amazing work!",
        level_icon(new_level),
    )

    milestone = MILESTONE_ACHIEVEMENTS.get(new_level)
    if milestone:
        await repo.insert_achievement(
            user_id,
            "milestone",
            milestone["title"],
            milestone["description"],
            milestone["icon"],
        )


async def evaluate_level_progression(
    repo: ProgressRepository,
    user_id: str,
    audio: AudioFeedback | None = None,
) -> LevelProgress:
    """Promote the user if they qualify for a higher level.

    Safe to call repeatedly: once the stored level matches the qualified
    level nothing is written. A jump of several levels at once produces a
    single level-up achievement for the final level.
    """
    current_level, metrics = await gather_metrics(repo, user_id)
    qualified = qualified_level(metrics)

    if qualified > current_level:
        await repo.upsert_profile(user_id, level=qualified)
        await award_level_up(repo, user_id, qualified, audio)
        logger.info(
            "User %s promoted from level %d to %d (words=%d accuracy=%.1f streak=%d minutes=%d)",
            user_id, current_level, qualified,
            metrics.mastered_words, metrics.accuracy, metrics.streak_days, metrics.practice_minutes,
        )
        level = qualified
    else:
        level = current_level

    next_req = requirement_for(level + 1)
    progress = progress_toward(metrics, next_req) if next_req else 100

    return LevelProgress(
        level=level,
        previous_level=current_level,
        progress_percent=progress,
        next_requirements=next_req,
        metrics=metrics,
    )
