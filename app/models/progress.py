from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """One learner's progress through one course, keyed (user_id, course_id).

    completion_rate is a percentage (0-100) derived from lessons_completed
    and the course's lesson count at the time of the last event.  It is not
    clamped: a rate above 100 means more completions than lessons.
    """

    user_id: str
    course_id: str
    lessons_completed: int = 0
    hours_spent: float = 0.0
    completion_rate: float = 0.0
    last_accessed: datetime | None = None
    completed_at: datetime | None = None
    completed_lesson_ids: frozenset[str] = field(default_factory=frozenset)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0


@dataclass(frozen=True, slots=True)
class TestAttemptProgress:
    """Outcome of a learner's latest attempt at a test, keyed (user_id, test_id)."""

    __test__ = False  # not a pytest test class

    user_id: str
    test_id: str
    questions_answered: int = 0
    correct_answers: int = 0
    score: float = 0.0
    attempts_used: int = 0
    last_attempt: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0


@dataclass(frozen=True, slots=True)
class UserActivity:
    """Presence-based login streak for one user."""

    user_id: str
    last_active: datetime
    streak_days: int = 1
    version: int = 0


@dataclass(frozen=True, slots=True)
class LoginEvent:
    """Append-only login log entry.

    streak_days is the streak the login produced, stamped at write time so
    rollups can read a window of the log without replaying what came before.
    """

    user_id: str
    login_time: datetime
    streak_days: int = 1


@dataclass(frozen=True, slots=True)
class MonthlyProgress:
    month: int
    year: int
    streak_days: int
    courses_completed: int
    login_frequency_by_day: dict[str, int]


@dataclass(frozen=True, slots=True)
class ProgressOverview:
    total_streak_days: int
    total_courses_completed: int
    total_tests_completed: int
