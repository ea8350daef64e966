"""Tests for the level ladder."""

from app.services.levels import (
    LEVEL_REQUIREMENTS,
    MAX_LEVEL,
    LevelMetrics,
    level_icon,
    level_title,
    meets_requirement,
    progress_toward,
    qualified_level,
    requirement_for,
)


def _metrics(words=0, accuracy=0.0, streak=0, minutes=0):
    return LevelMetrics(
        mastered_words=words, accuracy=accuracy, streak_days=streak, practice_minutes=minutes
    )


def test_ladder_has_ten_increasing_levels():
    assert [r.level for r in LEVEL_REQUIREMENTS] == list(range(1, 11))
    assert MAX_LEVEL == 10
    for lower, higher in zip(LEVEL_REQUIREMENTS, LEVEL_REQUIREMENTS[1:]):
        assert higher.min_words > lower.min_words
        assert higher.min_accuracy > lower.min_accuracy


def test_blank_user_qualifies_for_level_one_only():
    metrics = _metrics()
    assert qualified_level(metrics) == 1
    assert progress_toward(metrics, requirement_for(2)) == 0


def test_exact_thresholds_qualify():
    assert qualified_level(_metrics(75, 70, 7, 90)) == 3
    assert qualified_level(_metrics(1500, 95, 120, 2000)) == 10


def test_walk_stops_at_first_failed_level():
    # plenty of words and time, but accuracy only clears level 2
    metrics = _metrics(words=2000, accuracy=65, streak=200, minutes=5000)
    assert qualified_level(metrics) == 2


def test_qualification_is_contiguous_from_level_one():
    metrics = _metrics(words=400, accuracy=85, streak=30, minutes=480)
    level = qualified_level(metrics)
    assert level == 6
    for req in LEVEL_REQUIREMENTS[:level]:
        assert meets_requirement(metrics, req)


def test_progress_averages_capped_ratios():
    req = requirement_for(2)  # 25 words, 60%, 3 days, 30 minutes
    metrics = _metrics(words=50, accuracy=30, streak=0, minutes=15)
    # (1.0 + 0.5 + 0.0 + 0.5) / 4 = 0.5
    assert progress_toward(metrics, req) == 50


def test_progress_is_floored():
    req = requirement_for(2)
    metrics = _metrics(minutes=10)  # 10/30 averaged over four metrics = 8.33%
    assert progress_toward(metrics, req) == 8


def test_titles_and_icons_clamp():
    assert level_title(1) == "Beginner Reader"
    assert level_title(10) == "Reading Buddy Master"
    assert level_title(42) == "Reading Buddy Master"
    assert level_icon(0) == "🌱"
    assert requirement_for(11) is None
