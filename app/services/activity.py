"""Activity & Streak Tracker.

Streaks are presence-based, not calendar-based: a login strictly less
than 48 hours after the previous one extends the streak, anything later
resets it to 1.  Logins 47h apart across three calendar days extend;
logins 49h apart on consecutive days reset.

The monthly rollup is a pure aggregation over the login log and course
progress records.  Each logged login carries the streak it produced, so a
month only needs its own slice of the log.  The per-day histogram uses UTC
calendar dates and is independent of the 48h streak rule.
"""

from __future__ import annotations

import calendar
import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import Literal

from app.models.progress import (
    CourseProgress,
    LoginEvent,
    MonthlyProgress,
    UserActivity,
)
from app.services.errors import ProgressValidationError

logger = logging.getLogger(__name__)

STREAK_WINDOW = timedelta(hours=48)

StreakOutcome = Literal["started", "extended", "reset"]


def streak_outcome(current: UserActivity | None, now: datetime) -> StreakOutcome:
    if current is None:
        return "started"
    if now - current.last_active < STREAK_WINDOW:
        return "extended"
    return "reset"


def record_login(
    current: UserActivity | None, now: datetime, *, user_id: str
) -> UserActivity:
    outcome = streak_outcome(current, now)
    if current is None:
        return UserActivity(user_id=user_id, last_active=now, streak_days=1)
    if outcome == "extended":
        return replace(current, last_active=now, streak_days=current.streak_days + 1)
    return replace(current, last_active=now, streak_days=1)


# ---------------------------------------------------------------------------
# Monthly rollup
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MonthWindow:
    """Half-open calendar month [start, end) in UTC."""

    year: int
    month: int
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


def _month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=UTC)


def month_window(year: int, month: int) -> MonthWindow:
    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    return MonthWindow(
        year=year,
        month=month,
        start=_month_start(year, month),
        end=_month_start(next_year, next_month),
    )


def month_windows(now: datetime, months_back: int) -> list[MonthWindow]:
    """Windows for the current month and the months before it, newest first."""
    if months_back < 1:
        raise ProgressValidationError(f"months_back must be >= 1 (got {months_back})")
    now = now.astimezone(UTC)
    windows = []
    for offset in range(months_back):
        index = now.year * 12 + (now.month - 1) - offset
        windows.append(month_window(index // 12, index % 12 + 1))
    return windows


def months_before(moment: datetime, months: int) -> datetime:
    """Same day and time `months` calendar months earlier, clamped to month end."""
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = index // 12, index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def monthly_rollup(
    logins: Iterable[LoginEvent],
    course_progress: Iterable[CourseProgress],
    window: MonthWindow,
) -> MonthlyProgress:
    in_window = [e for e in logins if window.contains(e.login_time)]
    streak_max = max((e.streak_days for e in in_window), default=0)

    courses_completed = sum(
        1
        for p in course_progress
        if p.completed_at is not None and window.contains(p.completed_at)
    )

    frequency = Counter(
        e.login_time.astimezone(UTC).date().isoformat() for e in in_window
    )

    return MonthlyProgress(
        month=window.month,
        year=window.year,
        streak_days=streak_max,
        courses_completed=courses_completed,
        login_frequency_by_day=dict(sorted(frequency.items())),
    )
