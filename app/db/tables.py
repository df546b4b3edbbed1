"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in app/models/.
Repos convert between SQLAlchemy rows and domain dataclasses.
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from app.db.engine import Base

# --- Catalog (owned by course administration, read-only here) ---


class CourseRow(Base):
    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    admin_ids: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, default=[]
    )


class LessonRow(Base):
    __tablename__ = "lessons"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    course_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    sequence_order: Mapped[int] = mapped_column(Integer, nullable=False)


class TestRow(Base):
    __tablename__ = "tests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    course_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("courses.id", ondelete="SET NULL"), nullable=True
    )


class QuestionRow(Base):
    __tablename__ = "test_questions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    test_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("tests.id", ondelete="CASCADE"), nullable=False
    )
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False)
    correct_option: Mapped[int] = mapped_column(Integer, nullable=False)
    sequence_order: Mapped[int] = mapped_column(Integer, nullable=False)


class TestAccessPolicyRow(Base):
    __tablename__ = "test_access_policies"

    test_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("tests.id", ondelete="CASCADE"), primary_key=True
    )
    attempts_allowed: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )  # 0 = unlimited


# --- Progress (mutated only by the trackers) ---


class CourseProgressRow(Base):
    __tablename__ = "course_progress"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    course_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True
    )
    lessons_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hours_spent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    completion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_accessed: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_lesson_ids: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, default=[]
    )
    created_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class TestProgressRow(Base):
    __tablename__ = "test_progress"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    test_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("tests.id", ondelete="CASCADE"), primary_key=True
    )
    questions_answered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    attempts_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_attempt: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class UserActivityRow(Base):
    __tablename__ = "user_activity"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_active: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    streak_days: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class LoginEventRow(Base):
    """Append-only login log."""

    __tablename__ = "login_events"
    __table_args__ = (Index("ix_login_events_user_time", "user_id", "login_time"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    login_time: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    streak_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )
