"""Word mastery tiers derived from rolling pronunciation accuracy.

A word's tier is recomputed after every attempt from its lifetime counts:

    100  accuracy >= 90%  and practised at least 5 times
     75  accuracy >= 70%  and practised at least 3 times
     50  accuracy >= 50%
     25  anything else

Tier 0 means the word has never been practised. The same thresholds are
rendered as an SQL ``CASE`` so the upsert can compute the tier atomically
inside the database.
"""

from __future__ import annotations

from sqlalchemy import Float, case, cast
from sqlalchemy.sql.elements import ColumnElement

# (tier, min accuracy ratio, min times practised), highest first
MASTERY_TIERS: tuple[tuple[int, float, int], ...] = (
    (100, 0.90, 5),
    (75, 0.70, 3),
    (50, 0.50, 0),
)
FLOOR_TIER = 25
UNPRACTISED_TIER = 0


def mastery_tier(times_practiced: int, times_correct: int) -> int:
    """Return the mastery tier for the given (post-attempt) counts."""
    if times_practiced <= 0:
        return UNPRACTISED_TIER
    ratio = times_correct / times_practiced
    for tier, min_ratio, min_practiced in MASTERY_TIERS:
        if ratio >= min_ratio and times_practiced >= min_practiced:
            return tier
    return FLOOR_TIER


def mastery_tier_clause(times_practiced, times_correct) -> ColumnElement:
    """SQL expression equivalent of :func:`mastery_tier`.

    ``times_practiced`` is always >= 1 where this is used (it is the
    post-increment count), so the division is safe.
    """
    ratio = cast(times_correct, Float) / times_practiced
    whens = [
        ((ratio >= min_ratio) & (times_practiced >= min_practiced), tier)
        for tier, min_ratio, min_practiced in MASTERY_TIERS
    ]
    return case(*whens, else_=FLOOR_TIER)


def normalize_word(word: str) -> str:
    return word.strip().lower()
