"""The fixed level ladder and its presentation metadata."""

from __future__ import annotations

import math
from dataclasses import dataclass, field


@dataclass(frozen=True)
class LevelRequirement:
    level: int
    min_words: int  # mastered words
    min_accuracy: float  # lifetime accuracy %
    min_streak_days: int
    min_practice_minutes: int
    special_requirements: tuple[str, ...] = field(default=())


@dataclass(frozen=True)
class LevelMetrics:
    """The four metrics a user is measured on."""

    mastered_words: int
    accuracy: float
    streak_days: int
    practice_minutes: int


LEVEL_REQUIREMENTS: tuple[LevelRequirement, ...] = (
    LevelRequirement(1, 0, 0, 0, 0),
    LevelRequirement(
        2, 25, 60, 3, 30,
        ("Complete first chat session", "Try pronunciation practice"),
    ),
    LevelRequirement(
        3, 75, 70, 7, 90,
        ("Master 10 easy words", "Use app for 7 consecutive days"),
    ),
    LevelRequirement(
        4, 150, 75, 14, 180,
        ("Master 20 medium words", "Achieve 80% accuracy in practice"),
    ),
    LevelRequirement(
        5, 250, 80, 21, 300,
        ("Master 15 hard words", "Complete 50 practice sessions"),
    ),
    LevelRequirement(
        6, 400, 85, 30, 480,
        ("Master 30 hard words", "Maintain 30-day streak"),
    ),
    LevelRequirement(
        7, 600, 88, 45, 720,
        ("Reading Champion achievement", "Help others learn"),
    ),
    LevelRequirement(
        8, 850, 90, 60, 1000,
        ("Master 100 words total", "Pronunciation expert"),
    ),
    LevelRequirement(
        9, 1200, 92, 90, 1440,
        ("Learning mentor", "Advanced difficulty mastery"),
    ),
    LevelRequirement(
        10, 1500, 95, 120, 2000,
        ("Reading Buddy Master", "Perfect pronunciation streak"),
    ),
)

MAX_LEVEL = LEVEL_REQUIREMENTS[-1].level

LEVEL_TITLES = (
    "Beginner Reader",
    "Word Explorer",
    "Reading Sprout",
    "Pronunciation Pro",
    "Reading Star",
    "Word Wizard",
    "Reading Champion",
    "Pronunciation Master",
    "Reading Genius",
    "Reading Buddy Master",
)
LEVEL_ICONS = ("🌱", "🌿", "🌳", "⭐", "🌟", "💫", "🏆", "👑", "💎", "🔥")
LEVEL_COLORS = (
    "#10B981",  # green
    "#3B82F6",  # blue
    "#8B5CF6",  # purple
    "#F59E0B",  # amber
    "#EF4444",  # red
    "#EC4899",  # pink
    "#6366F1",  # indigo
    "#14B8A6",  # teal
    "#F97316",  # orange
    "#DC2626",  # dark red
)


def _clamp_index(level: int, size: int) -> int:
    return max(0, min(level - 1, size - 1))


def level_title(level: int) -> str:
    return LEVEL_TITLES[_clamp_index(level, len(LEVEL_TITLES))]


def level_icon(level: int) -> str:
    return LEVEL_ICONS[_clamp_index(level, len(LEVEL_ICONS))]


def level_color(level: int) -> str:
    return LEVEL_COLORS[_clamp_index(level, len(LEVEL_COLORS))]


def requirement_for(level: int) -> LevelRequirement | None:
    for req in LEVEL_REQUIREMENTS:
        if req.level == level:
            return req
    return None


def meets_requirement(metrics: LevelMetrics, req: LevelRequirement) -> bool:
    return (
        metrics.mastered_words >= req.min_words
        and metrics.accuracy >= req.min_accuracy
        and metrics.streak_days >= req.min_streak_days
        and metrics.practice_minutes >= req.min_practice_minutes
    )


def qualified_level(metrics: LevelMetrics) -> int:
    """Highest level satisfied contiguously from level 1.

    The walk stops at the first level whose requirements are not met, so a
    user can never qualify for level L without qualifying for every level
    below it.
    """
    level = 1
    for req in LEVEL_REQUIREMENTS:
        if not meets_requirement(metrics, req):
            break
        level = req.level
    return level


def _ratio(current: float, required: float) -> float:
    if required <= 0:
        return 1.0
    return min(current / required, 1.0)


def progress_toward(metrics: LevelMetrics, req: LevelRequirement) -> int:
    """Average of the four capped metric ratios for ``req``, as 0-100."""
    ratios = [
        _ratio(metrics.mastered_words, req.min_words),
        _ratio(metrics.accuracy, req.min_accuracy),
        _ratio(metrics.streak_days, req.min_streak_days),
        _ratio(metrics.practice_minutes, req.min_practice_minutes),
    ]
    return math.floor(sum(ratios) / len(ratios) * 100)
