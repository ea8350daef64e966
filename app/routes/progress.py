"""Learning session and progress APIs."""

from __future__ import annotations

import datetime as dt
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_request_user_id, unauthorized
from app.config import settings
from app.database import get_db
from app.models import DIFFICULTIES, SESSION_TYPES
from app.repository import ProgressRepository
from app.services.daily_goals import goal_to_dict
from app.services.learning_session import LearningSessionRecorder, SessionHandle
from app.services.levels import (
    LEVEL_REQUIREMENTS,
    level_color,
    level_icon,
    level_title,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# In-progress sessions: session_id -> (user_id, handle)
_active_sessions: dict[str, tuple[str, SessionHandle]] = {}


def _parse_date(value: str | None) -> dt.date | None:
    """Parse the caller's local date (YYYY-MM-DD); None if absent."""
    if not value:
        return None
    return dt.date.fromisoformat(value)


def prune_stale_sessions(now: dt.datetime | None = None) -> int:
    """Forget sessions that were started but never finished."""
    now = now or dt.datetime.now(dt.timezone.utc)
    cutoff = now - dt.timedelta(minutes=settings.session_max_age_minutes)
    stale = [sid for sid, (_, handle) in _active_sessions.items() if handle.started_at < cutoff]
    for sid in stale:
        _active_sessions.pop(sid, None)
    if stale:
        logger.info(
            "Dropped %d unfinished session(s) older than %d min",
            len(stale), settings.session_max_age_minutes,
        )
    return len(stale)


def _lookup_session(session_id: str, user_id: str) -> SessionHandle | None:
    entry = _active_sessions.get(session_id)
    if entry is None or entry[0] != user_id:
        return None
    return entry[1]


# ---- Sessions ----


@router.post("/sessions")
async def start_session(request: Request, db: AsyncSession = Depends(get_db)):
    """Start a learning session. Body: {session_type: "chat"|"practice"}."""
    user_id = get_request_user_id(request)
    if not user_id:
        return unauthorized()

    body = await request.json()
    session_type = body.get("session_type", "practice")
    if session_type not in SESSION_TYPES:
        return JSONResponse({"error": f"Unknown session type: {session_type}"}, status_code=400)

    prune_stale_sessions()
    recorder = LearningSessionRecorder(ProgressRepository(db), user_id)
    handle = recorder.start_session(session_type)
    _active_sessions[handle.session_id] = (user_id, handle)

    return JSONResponse({
        "session_id": handle.session_id,
        "session_type": handle.session_type,
        "started_at": handle.started_at.isoformat(),
    })


@router.post("/sessions/{session_id}/attempts")
async def record_attempt(
    session_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Record one word attempt. Body: {word, is_correct, difficulty?}."""
    user_id = get_request_user_id(request)
    if not user_id:
        return unauthorized()
    handle = _lookup_session(session_id, user_id)
    if handle is None:
        return JSONResponse({"error": "Session not found"}, status_code=404)

    body = await request.json()
    word = str(body.get("word", "")).strip()
    if not word:
        return JSONResponse({"error": "No word provided"}, status_code=400)
    difficulty = body.get("difficulty", "easy")
    if difficulty not in DIFFICULTIES:
        return JSONResponse({"error": f"Unknown difficulty: {difficulty}"}, status_code=400)
    is_correct = body.get("is_correct", False)
    if not isinstance(is_correct, bool):
        return JSONResponse({"error": "is_correct must be true or false"}, status_code=400)

    recorder = LearningSessionRecorder(ProgressRepository(db), user_id)
    progress = await recorder.record_attempt(handle, word, is_correct, difficulty)

    return JSONResponse({
        "total_attempts": handle.total_attempts,
        "correct_count": handle.correct_count,
        "word_progress": None if progress is None else {
            "word": progress.word,
            "times_practiced": progress.times_practiced,
            "times_correct": progress.times_correct,
            "mastery_level": progress.mastery_level,
        },
    })


@router.post("/sessions/{session_id}/finish")
async def finish_session(
    session_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Finish a session – save it and update stats, goals, streak and level.

    Optional body: {date: "YYYY-MM-DD"} with the caller's local date.
    """
    user_id = get_request_user_id(request)
    if not user_id:
        return unauthorized()
    body = await request.json() if await request.body() else {}
    try:
        today = _parse_date(body.get("date"))
    except ValueError:
        return JSONResponse({"error": "Invalid date"}, status_code=400)

    handle = _lookup_session(session_id, user_id)
    if handle is None:
        return JSONResponse({"error": "Session not found"}, status_code=404)
    # taken out before saving so a concurrent finish gets a 404
    entry = _active_sessions.pop(session_id)
    recorder = LearningSessionRecorder(ProgressRepository(db), user_id)
    result = await recorder.end_session(handle, today=today)
    if result.error:
        if not handle.ended:
            _active_sessions[session_id] = entry
        return JSONResponse({"error": result.error}, status_code=500)

    return JSONResponse(result.summary.to_dict())


# ---- Progress ----


@router.get("/progress/level")
async def level_progress(request: Request, db: AsyncSession = Depends(get_db)):
    """Check level progression (promoting if qualified) and report progress."""
    user_id = get_request_user_id(request)
    if not user_id:
        return unauthorized()

    recorder = LearningSessionRecorder(ProgressRepository(db), user_id)
    check = await recorder.evaluate_level_progression()
    if check.error:
        return JSONResponse({"error": check.error}, status_code=500)
    return JSONResponse(check.progress.to_dict())


@router.get("/progress")
async def progress_overview(
    request: Request,
    date: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Profile totals, today's goals and recent achievements."""
    user_id = get_request_user_id(request)
    if not user_id:
        return unauthorized()
    try:
        today = _parse_date(date) or dt.date.today()
    except ValueError:
        return JSONResponse({"error": "Invalid date"}, status_code=400)

    repo = ProgressRepository(db)
    profile = await repo.ensure_profile(user_id)
    goals = await repo.get_daily_goals(user_id, today)
    achievements = await repo.list_achievements(user_id)
    sessions = await repo.count_learning_sessions(user_id)

    return JSONResponse({
        "profile": {
            "level": profile.level,
            "title": level_title(profile.level),
            "total_words_learned": profile.total_words_learned,
            "total_practice_time": profile.total_practice_time,
            "accuracy_rate": round(profile.accuracy_rate, 2),
            "current_streak": profile.current_streak,
            "longest_streak": profile.longest_streak,
            "sessions_completed": sessions,
        },
        "daily_goals": [goal_to_dict(g) for g in goals],
        "achievements": [
            {
                "type": a.achievement_type,
                "title": a.title,
                "description": a.description,
                "icon": a.icon,
                "earned_at": a.earned_at.isoformat() if a.earned_at else None,
            }
            for a in achievements
        ],
    })


@router.get("/levels")
async def list_levels():
    """The level ladder with display metadata."""
    return JSONResponse([
        {
            "level": req.level,
            "title": level_title(req.level),
            "icon": level_icon(req.level),
            "color": level_color(req.level),
            "min_words": req.min_words,
            "min_accuracy": req.min_accuracy,
            "min_streak_days": req.min_streak_days,
            "min_practice_minutes": req.min_practice_minutes,
            "special_requirements": list(req.special_requirements),
        }
        for req in LEVEL_REQUIREMENTS
    ])


# ---- Settings ----


def _settings_to_dict(app_settings) -> dict:
    return {
        "sound_enabled": app_settings.sound_enabled,
        "daily_word_goal": app_settings.daily_word_goal,
    }


@router.get("/settings")
async def get_settings(request: Request, db: AsyncSession = Depends(get_db)):
    """The caller's app settings, created with defaults on first read."""
    user_id = get_request_user_id(request)
    if not user_id:
        return unauthorized()

    app_settings = await ProgressRepository(db).get_app_settings(user_id)
    return JSONResponse(_settings_to_dict(app_settings))


@router.put("/settings")
async def update_settings(request: Request, db: AsyncSession = Depends(get_db)):
    """Update settings. Body: {sound_enabled?: bool, daily_word_goal?: int >= 1}.

    A new word goal applies from the next day's goals onwards.
    """
    user_id = get_request_user_id(request)
    if not user_id:
        return unauthorized()

    body = await request.json()
    fields = {}
    if "sound_enabled" in body:
        if not isinstance(body["sound_enabled"], bool):
            return JSONResponse({"error": "sound_enabled must be true or false"}, status_code=400)
        fields["sound_enabled"] = body["sound_enabled"]
    if "daily_word_goal" in body:
        goal = body["daily_word_goal"]
        if isinstance(goal, bool) or not isinstance(goal, int) or goal < 1:
            return JSONResponse({"error": "daily_word_goal must be a positive whole number"}, status_code=400)
        fields["daily_word_goal"] = goal

    app_settings = await ProgressRepository(db).upsert_app_settings(user_id, **fields)
    logger.info("Settings updated for user %s: %s", user_id, ", ".join(sorted(fields)) or "none")
    return JSONResponse(_settings_to_dict(app_settings))
