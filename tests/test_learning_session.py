"""Tests for the learning session recorder and finalize pipeline."""

import asyncio
import datetime as dt

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import LearningSession
from app.repository import ProgressRepository
from app.services import learning_session
from app.services.learning_session import LearningSessionRecorder, compute_accuracy
from conftest import set_daily_word_goal

USER = "reader-1"


def test_compute_accuracy():
    assert compute_accuracy(0, 0) == 0.0
    assert compute_accuracy(2, 3) == 66.67
    assert compute_accuracy(4, 4) == 100.0


def test_start_session_rejects_unknown_type(repo):
    recorder = LearningSessionRecorder(repo, USER)
    with pytest.raises(ValueError):
        recorder.start_session("quiz")


async def test_record_attempt_updates_handle_and_word_progress(repo):
    recorder = LearningSessionRecorder(repo, USER)
    handle = recorder.start_session("practice")

    progress = await recorder.record_attempt(handle, "Cat", True, "easy")
    await recorder.record_attempt(handle, "cat", False, "easy")

    assert handle.words_practiced == ["Cat", "cat"]
    assert handle.total_attempts == 2
    assert handle.correct_count == 1
    assert progress.mastery_level == 50
    stored = await repo.get_word_progress(USER, "cat")
    assert (stored.times_practiced, stored.times_correct) == (2, 1)


async def test_end_session_counts_attempts_not_unique_words(repo, today):
    recorder = LearningSessionRecorder(repo, USER)
    handle = recorder.start_session("practice")
    for word, is_correct in (("cat", True), ("cat", False), ("dog", True)):
        await recorder.record_attempt(handle, word, is_correct)

    result = await recorder.end_session(handle, today=today)

    assert result.error is None
    summary = result.summary
    assert summary.accuracy == 66.67
    assert summary.words_practiced == ["cat", "cat", "dog"]
    goals = {g["goal_type"]: g for g in summary.daily_goals}
    assert goals["words"]["current_value"] == 3
    assert goals["accuracy"]["current_value"] == 66

    profile = await repo.get_profile(USER)
    assert profile.total_words_learned == 3
    assert profile.accuracy_rate == pytest.approx(33.335)

    rows = (await repo.db.execute(select(LearningSession))).scalars().all()
    assert len(rows) == 1
    assert rows[0].words_practiced == ["cat", "cat", "dog"]
    assert rows[0].correct_pronunciations == 2
    assert rows[0].total_attempts == 3


async def test_empty_session_has_zero_accuracy(repo, today):
    recorder = LearningSessionRecorder(repo, USER)
    handle = recorder.start_session("chat")

    result = await recorder.end_session(handle, today=today)

    assert result.error is None
    assert result.summary.accuracy == 0.0
    assert result.summary.total_attempts == 0


async def test_duration_feeds_time_goal(repo, today):
    recorder = LearningSessionRecorder(repo, USER)
    handle = recorder.start_session("practice")
    handle.started_at -= dt.timedelta(seconds=125)

    result = await recorder.end_session(handle, today=today)

    assert 125 <= result.summary.duration_seconds < 130
    goals = {g["goal_type"]: g for g in result.summary.daily_goals}
    assert goals["time"]["current_value"] == 2
    assert (await repo.get_profile(USER)).total_practice_time == result.summary.duration_seconds


async def test_meeting_word_goal_advances_streak(repo, today):
    await set_daily_word_goal(repo, USER, 2)
    recorder = LearningSessionRecorder(repo, USER)

    handle = recorder.start_session("practice")
    await recorder.record_attempt(handle, "sun", True)
    await recorder.record_attempt(handle, "moon", True)
    first = await recorder.end_session(handle, today=today)

    handle = recorder.start_session("practice")
    await recorder.record_attempt(handle, "star", True)
    second = await recorder.end_session(handle, today=today)

    assert first.summary.streak_advanced
    assert not second.summary.streak_advanced
    assert (await repo.get_profile(USER)).current_streak == 1


async def test_no_user_returns_error(repo):
    recorder = LearningSessionRecorder(repo, None)
    handle = recorder.start_session("practice")

    assert await recorder.record_attempt(handle, "cat", True) is None
    assert handle.total_attempts == 1
    result = await recorder.end_session(handle)
    assert result.summary is None
    assert result.error == "No user"
    check = await recorder.evaluate_level_progression()
    assert check.error == "No user"


async def test_session_can_only_end_once(repo, today):
    recorder = LearningSessionRecorder(repo, USER)
    handle = recorder.start_session("practice")
    await recorder.record_attempt(handle, "cat", True)

    assert (await recorder.end_session(handle, today=today)).error is None
    again = await recorder.end_session(handle, today=today)

    assert again.error == "Session already ended"
    assert await recorder.record_attempt(handle, "dog", True) is None
    assert (await repo.get_profile(USER)).total_words_learned == 1


async def test_overlapping_end_session_saves_once(engine, repo, today):
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    first = LearningSessionRecorder(repo, USER)
    handle = first.start_session("practice")
    await first.record_attempt(handle, "cat", True)

    async with maker() as other_db:
        second = LearningSessionRecorder(ProgressRepository(other_db), USER)
        results = await asyncio.gather(
            first.end_session(handle, today=today),
            second.end_session(handle, today=today),
        )

    assert sorted(r.error or "" for r in results) == ["", "Session already ended"]
    assert await repo.count_learning_sessions(USER) == 1
    assert (await repo.get_profile(USER)).total_words_learned == 1


async def test_failed_save_leaves_session_open(repo, today, monkeypatch):
    async def broken_insert(*args, **kwargs):
        raise OperationalError("INSERT INTO learning_sessions", {}, Exception("disk I/O error"))

    recorder = LearningSessionRecorder(repo, USER)
    handle = recorder.start_session("practice")
    await recorder.record_attempt(handle, "cat", True)

    monkeypatch.setattr(repo, "insert_learning_session", broken_insert)
    failed = await recorder.end_session(handle, today=today)
    assert failed.error == "Failed to save learning session"
    assert not handle.ended

    monkeypatch.undo()
    retried = await recorder.end_session(handle, today=today)
    assert retried.error is None
    assert await repo.count_learning_sessions(USER) == 1


async def test_failed_step_does_not_undo_session(repo, today, monkeypatch):
    async def broken_stats(*args, **kwargs):
        raise OperationalError("UPDATE profiles", {}, Exception("database is locked"))

    monkeypatch.setattr(learning_session, "update_user_stats", broken_stats)
    recorder = LearningSessionRecorder(repo, USER)
    handle = recorder.start_session("practice")
    await recorder.record_attempt(handle, "cat", True)

    result = await recorder.end_session(handle, today=today)

    assert result.error is None
    assert result.summary.record_id is not None
    assert result.summary.level.level == 1
    goals = {g["goal_type"]: g for g in result.summary.daily_goals}
    assert goals["words"]["current_value"] == 1
    assert (await repo.get_profile(USER)).total_words_learned == 0
    assert await repo.count_learning_sessions(USER) == 1


async def test_evaluate_level_progression_reports_progress(repo):
    recorder = LearningSessionRecorder(repo, USER)

    check = await recorder.evaluate_level_progression()

    assert check.error is None
    assert check.progress.level == 1
    assert check.progress.to_dict()["title"] == "Beginner Reader"
