"""SQLAlchemy ORM models for the Reading Buddy progress engine."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

SESSION_TYPES = ("chat", "practice")
DIFFICULTIES = ("easy", "medium", "hard")
GOAL_TYPES = ("words", "time", "accuracy")


# ---------------------------------------------------------------------------
# Profiles & settings
# ---------------------------------------------------------------------------


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    level: Mapped[int] = mapped_column(Integer, default=1)
    total_words_learned: Mapped[int] = mapped_column(Integer, default=0)
    total_practice_time: Mapped[int] = mapped_column(Integer, default=0)  # seconds
    accuracy_rate: Mapped[float] = mapped_column(Float, default=0.0)  # 0-100
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    streak_last_advanced_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    app_settings: Mapped[Optional["AppSettings"]] = relationship(
        back_populates="profile", uselist=False
    )


class AppSettings(Base):
    __tablename__ = "app_settings"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    sound_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    daily_word_goal: Mapped[int] = mapped_column(Integer, default=10)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    profile: Mapped["Profile"] = relationship(back_populates="app_settings")


# ---------------------------------------------------------------------------
# Word progress
# ---------------------------------------------------------------------------


class WordProgress(Base):
    __tablename__ = "word_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "word", name="uq_word_progress_user_word"),
        CheckConstraint("times_correct <= times_practiced", name="ck_word_progress_correct"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    word: Mapped[str] = mapped_column(String(100), nullable=False)  # lowercased
    difficulty: Mapped[str] = mapped_column(String(10), default="easy")  # easy | medium | hard
    times_practiced: Mapped[int] = mapped_column(Integer, default=0)
    times_correct: Mapped[int] = mapped_column(Integer, default=0)
    mastery_level: Mapped[int] = mapped_column(Integer, default=0)  # 0 | 25 | 50 | 75 | 100
    last_practiced: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Daily goals
# ---------------------------------------------------------------------------


class DailyGoal(Base):
    __tablename__ = "daily_goals"
    __table_args__ = (
        UniqueConstraint("user_id", "goal_type", "goal_date", name="uq_daily_goal"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    goal_type: Mapped[str] = mapped_column(String(10), nullable=False)  # words | time | accuracy
    goal_date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    target_value: Mapped[int] = mapped_column(Integer, nullable=False)
    current_value: Mapped[int] = mapped_column(Integer, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


# ---------------------------------------------------------------------------
# Learning sessions & achievements (append-only)
# ---------------------------------------------------------------------------


class LearningSession(Base):
    __tablename__ = "learning_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    session_type: Mapped[str] = mapped_column(String(10), nullable=False)  # chat | practice
    words_practiced: Mapped[list[str]] = mapped_column(JSON, default=list)
    correct_pronunciations: Mapped[int] = mapped_column(Integer, default=0)
    total_attempts: Mapped[int] = mapped_column(Integer, default=0)
    session_duration: Mapped[int] = mapped_column(Integer, default=0)  # seconds
    accuracy_rate: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )


class Achievement(Base):
    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    achievement_type: Mapped[str] = mapped_column(String(30), nullable=False)  # level_up | milestone
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False)
    earned_at: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now()
    )
