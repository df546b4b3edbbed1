"""Course Progress Tracker.

Pure function of (current record, lesson count, event, clock) -> new record.
No I/O: the progress service loads the snapshot and persists the result.

Completion counting has two modes (LESSON_COMPLETION_MODE):

  counter:  every mark_completed event adds one lesson, even when the
             same lesson is reported twice.  This is the historical
             behaviour and the default.
  distinct: completions are tracked per lesson id; repeating a lesson
             leaves the counter unchanged.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime

from app.core.config import CompletionMode
from app.models.progress import CourseProgress
from app.services.errors import ProgressValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LessonEvent:
    hours_spent: float
    mark_completed: bool
    lesson_id: str | None = None


def completion_rate(lessons_completed: int, total_lessons: int) -> float:
    """Percentage of lessons completed; 0 for a course without lessons."""
    if total_lessons == 0:
        return 0.0
    return lessons_completed / total_lessons * 100


def _validate(total_lessons: int, event: LessonEvent, mode: str) -> None:
    if total_lessons < 0:
        raise ProgressValidationError(
            f"total_lessons must be >= 0 (got {total_lessons})"
        )
    if not math.isfinite(event.hours_spent) or event.hours_spent < 0:
        raise ProgressValidationError(
            f"hours_spent must be a non-negative number (got {event.hours_spent})"
        )
    if mode not in ("counter", "distinct"):
        raise ProgressValidationError(f"unknown completion mode {mode!r}")
    if mode == "distinct" and event.mark_completed and not event.lesson_id:
        raise ProgressValidationError(
            "lesson_id is required to mark a lesson completed"
        )


def is_duplicate_completion(
    current: CourseProgress | None, event: LessonEvent
) -> bool:
    return (
        current is not None
        and event.mark_completed
        and event.lesson_id is not None
        and event.lesson_id in current.completed_lesson_ids
    )


def apply_lesson_event(
    current: CourseProgress | None,
    total_lessons: int,
    event: LessonEvent,
    now: datetime,
    *,
    user_id: str,
    course_id: str,
    mode: CompletionMode = "counter",
) -> CourseProgress:
    _validate(total_lessons, event, mode)

    if current is None:
        current = CourseProgress(user_id=user_id, course_id=course_id, created_at=now)

    lessons_completed = current.lessons_completed
    completed_ids = current.completed_lesson_ids

    if event.mark_completed:
        duplicate = is_duplicate_completion(current, event)
        if mode == "counter" or not duplicate:
            lessons_completed += 1
        if event.lesson_id is not None:
            completed_ids = completed_ids | {event.lesson_id}

    rate = completion_rate(lessons_completed, total_lessons)
    if rate > 100:
        logger.warning(
            "Completion rate above 100 user=%s course=%s completed=%d lessons=%d",
            user_id,
            course_id,
            lessons_completed,
            total_lessons,
        )

    completed_at = current.completed_at
    if completed_at is None and total_lessons > 0 and rate >= 100:
        completed_at = now

    return replace(
        current,
        lessons_completed=lessons_completed,
        hours_spent=current.hours_spent + event.hours_spent,
        completion_rate=rate,
        last_accessed=now,
        completed_at=completed_at,
        completed_lesson_ids=completed_ids,
        updated_at=now,
    )
