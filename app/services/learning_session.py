"""Learning session recorder.

Accumulates a chat or practice session in memory, then on ``end_session``
saves an immutable session record and runs the progress pipeline:

    user stats -> daily goals -> streak -> level progression

Each step is its own unit of work. A failing step is logged and skipped; the
saved session record is never rolled back.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from app.models import SESSION_TYPES, WordProgress
from app.repository import ProgressRepository
from app.services.daily_goals import goal_to_dict, update_daily_goals
from app.services.feedback import AudioFeedback, SilentAudioFeedback
from app.services.progression import LevelProgress, evaluate_level_progression
from app.services.stats import update_user_stats
from app.services.streaks import advance_streak
from app.services.word_progress import record_word_attempt

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def compute_accuracy(correct: int, total: int) -> float:
    """Percentage of correct attempts, 0 when nothing was attempted."""
    if total <= 0:
        return 0.0
    return round(correct / total * 100, 2)


@dataclass
class SessionHandle:
    session_type: str
    started_at: dt.datetime = field(default_factory=_utcnow)
    words_practiced: list[str] = field(default_factory=list)
    correct_count: int = 0
    total_attempts: int = 0
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    ended: bool = False

    @property
    def accuracy(self) -> float:
        return compute_accuracy(self.correct_count, self.total_attempts)


@dataclass
class SessionSummary:
    record_id: int
    session_type: str
    words_practiced: list[str]
    correct_count: int
    total_attempts: int
    duration_seconds: int
    accuracy: float
    daily_goals: list[dict] = field(default_factory=list)
    streak_advanced: bool = False
    level: LevelProgress | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "session_type": self.session_type,
            "words_practiced": self.words_practiced,
            "correct_count": self.correct_count,
            "total_attempts": self.total_attempts,
            "duration_seconds": self.duration_seconds,
            "accuracy": self.accuracy,
            "daily_goals": self.daily_goals,
            "streak_advanced": self.streak_advanced,
            "level": self.level.to_dict() if self.level else None,
        }


@dataclass
class SessionResult:
    summary: SessionSummary | None = None
    error: str | None = None


@dataclass
class LevelCheck:
    progress: LevelProgress | None = None
    error: str | None = None


class LearningSessionRecorder:
    """Session-level entry point for UI callers, bound to one user."""

    def __init__(
        self,
        repo: ProgressRepository,
        user_id: str | None,
        audio: AudioFeedback | None = None,
    ):
        self.repo = repo
        self.user_id = user_id
        self.audio = audio or SilentAudioFeedback()
        self._profile_ready = False

    def start_session(self, session_type: str) -> SessionHandle:
        if session_type not in SESSION_TYPES:
            raise ValueError(f"Unknown session type: {session_type!r}")
        return SessionHandle(session_type=session_type)

    async def _ensure_profile(self) -> None:
        if not self._profile_ready:
            await self.repo.ensure_profile(self.user_id)
            self._profile_ready = True

    async def record_attempt(
        self,
        handle: SessionHandle,
        word: str,
        is_correct: bool,
        difficulty: str = "easy",
    ) -> WordProgress | None:
        """Add one attempt to the session and update the word's progress right away.

        Returns the updated word progress, or None when there is no user or
        the progress write failed (the attempt still counts for the session).
        """
        if handle.ended:
            logger.warning("Attempt at %r after session %s ended; ignored", word, handle.session_id)
            return None

        handle.words_practiced.append(word)
        handle.total_attempts += 1
        if is_correct:
            handle.correct_count += 1

        if not self.user_id:
            return None
        try:
            await self._ensure_profile()
        except SQLAlchemyError:
            logger.exception("Error loading profile for user %s", self.user_id)
            await self.repo.rollback()
            return None
        return await record_word_attempt(self.repo, self.user_id, word, difficulty, is_correct)

    async def _run_step(
        self,
        description: str,
        step: Callable[..., Awaitable[T]],
        *args: Any,
    ) -> T | None:
        try:
            return await step(self.repo, self.user_id, *args)
        except SQLAlchemyError:
            logger.exception("Error during %s for user %s", description, self.user_id)
            await self.repo.rollback()
            return None

    async def end_session(
        self,
        handle: SessionHandle,
        today: dt.date | None = None,
    ) -> SessionResult:
        """Persist the session and run the progress pipeline.

        ``today`` is the caller's local calendar date for daily goals and
        streaks; defaults to the server's local date.
        """
        if not self.user_id:
            return SessionResult(error="No user")
        if handle.ended:
            return SessionResult(error="Session already ended")
        # claimed before the first await so an overlapping call sees it
        handle.ended = True

        duration = int((_utcnow() - handle.started_at).total_seconds())
        accuracy = handle.accuracy
        words_learned = len(handle.words_practiced)  # attempts, duplicates included

        try:
            await self._ensure_profile()
            record_id = await self.repo.insert_learning_session(
                self.user_id,
                handle.session_type,
                handle.words_practiced,
                handle.correct_count,
                handle.total_attempts,
                duration,
                accuracy,
            )
        except SQLAlchemyError:
            logger.exception("Error saving learning session for user %s", self.user_id)
            handle.ended = False
            await self.repo.rollback()
            return SessionResult(error="Failed to save learning session")

        if today is None:
            today = dt.date.today()

        await self._run_step("user stats update", update_user_stats, words_learned, duration, accuracy)
        goals = await self._run_step(
            "daily goals update", update_daily_goals, words_learned, duration, accuracy, today
        )
        goal_snapshots = [goal_to_dict(g) for g in goals or []]
        streak_advanced = await self._run_step("streak update", advance_streak, today)
        level = await self._run_step(
            "level progression check", evaluate_level_progression, self.audio
        )

        logger.info(
            "Session %s saved for user %s: %d attempts, %.2f%% accuracy, %ds",
            record_id, self.user_id, handle.total_attempts, accuracy, duration,
        )
        return SessionResult(
            summary=SessionSummary(
                record_id=record_id,
                session_type=handle.session_type,
                words_practiced=list(handle.words_practiced),
                correct_count=handle.correct_count,
                total_attempts=handle.total_attempts,
                duration_seconds=duration,
                accuracy=accuracy,
                daily_goals=goal_snapshots,
                streak_advanced=bool(streak_advanced),
                level=level,
            )
        )

    async def evaluate_level_progression(self) -> LevelCheck:
        """Opportunistic level check, e.g. when the progress screen opens."""
        if not self.user_id:
            return LevelCheck(error="No user")
        progress = await self._run_step("level progression check", evaluate_level_progression, self.audio)
        if progress is None:
            return LevelCheck(error="Failed to check level progression")
        return LevelCheck(progress=progress)
