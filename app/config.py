"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"


@dataclass(frozen=True)
class Settings:
    # --- Database ---
    database_url: str = os.getenv(
        "READING_BUDDY_DB_URL", f"sqlite+aiosqlite:///{DATA_DIR / 'readingbuddy.db'}"
    )

    # --- Daily goals ---
    default_daily_word_goal: int = int(os.getenv("DEFAULT_DAILY_WORD_GOAL", "10"))
    daily_time_goal_minutes: int = 30
    daily_accuracy_goal: int = 80

    # --- Mastery / levels ---
    mastered_tier_threshold: int = 75  # tier at which a word counts as mastered

    # --- Live sessions ---
    # unfinished sessions older than this are dropped from memory
    session_max_age_minutes: int = int(os.getenv("SESSION_MAX_AGE_MINUTES", "180"))

    # --- Streak reset job (runs shortly after local midnight) ---
    streak_reset_hour: int = int(os.getenv("STREAK_RESET_HOUR", "0"))
    streak_reset_minute: int = int(os.getenv("STREAK_RESET_MINUTE", "5"))
    streak_reset_timezone: str = os.getenv("STREAK_RESET_TIMEZONE", "UTC")

    # --- Demo data ---
    seed_demo_profile: bool = os.getenv("SEED_DEMO_PROFILE", "false").lower() in ("1", "true", "yes")
    demo_user_id: str = os.getenv("DEMO_USER_ID", "demo-reader")

    # --- Logging ---
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
