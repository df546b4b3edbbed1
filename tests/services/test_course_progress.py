"""Tests for the Course Progress Tracker (pure function, no store)."""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta

import pytest

from app.models.progress import CourseProgress
from app.services.course_progress import (
    LessonEvent,
    apply_lesson_event,
    completion_rate,
    is_duplicate_completion,
)
from app.services.errors import ProgressValidationError

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def _apply(current, total, event, now=NOW, mode="counter"):
    return apply_lesson_event(
        current, total, event, now, user_id="u1", course_id="c1", mode=mode
    )


def test_first_event_creates_record() -> None:
    p = _apply(None, 4, LessonEvent(hours_spent=1.5, mark_completed=True))
    assert p.user_id == "u1"
    assert p.course_id == "c1"
    assert p.lessons_completed == 1
    assert p.hours_spent == 1.5
    assert p.completion_rate == 25.0
    assert p.last_accessed == NOW


def test_time_only_event_accumulates_hours() -> None:
    current = CourseProgress(
        user_id="u1", course_id="c1", lessons_completed=2, hours_spent=3.0,
        completion_rate=50.0,
    )
    p = _apply(current, 4, LessonEvent(hours_spent=0.5, mark_completed=False))
    assert p.lessons_completed == 2
    assert p.hours_spent == 3.5
    assert p.completion_rate == 50.0


def test_rate_is_recomputed_against_current_lesson_count() -> None:
    current = CourseProgress(
        user_id="u1", course_id="c1", lessons_completed=2, completion_rate=50.0
    )
    # the course grew from 4 to 8 lessons
    p = _apply(current, 8, LessonEvent(hours_spent=0, mark_completed=False))
    assert p.completion_rate == 25.0


def test_zero_lessons_gives_zero_rate() -> None:
    p = _apply(None, 0, LessonEvent(hours_spent=1, mark_completed=True))
    assert p.lessons_completed == 1
    assert p.completion_rate == 0.0
    assert p.completed_at is None


def test_completion_rate_helper() -> None:
    assert completion_rate(0, 0) == 0.0
    assert completion_rate(3, 4) == 75.0
    assert completion_rate(5, 4) == 125.0


def test_counter_mode_counts_repeated_lesson_and_exceeds_100() -> None:
    p = None
    for _ in range(5):
        p = _apply(p, 4, LessonEvent(hours_spent=0, mark_completed=True, lesson_id="l1"))
    assert p is not None
    assert p.lessons_completed == 5
    assert p.completion_rate == 125.0


def test_distinct_mode_ignores_repeated_lesson() -> None:
    event = LessonEvent(hours_spent=1, mark_completed=True, lesson_id="l1")
    p = _apply(None, 4, event, mode="distinct")
    p = _apply(p, 4, event, mode="distinct")
    assert p.lessons_completed == 1
    assert p.hours_spent == 2
    assert p.completed_lesson_ids == frozenset({"l1"})


def test_distinct_mode_requires_lesson_id_to_complete() -> None:
    with pytest.raises(ProgressValidationError):
        _apply(None, 4, LessonEvent(hours_spent=0, mark_completed=True), mode="distinct")


def test_is_duplicate_completion() -> None:
    current = CourseProgress(
        user_id="u1", course_id="c1", completed_lesson_ids=frozenset({"l1"})
    )
    assert is_duplicate_completion(current, LessonEvent(0, True, "l1"))
    assert not is_duplicate_completion(current, LessonEvent(0, True, "l2"))
    assert not is_duplicate_completion(current, LessonEvent(0, False, "l1"))
    assert not is_duplicate_completion(None, LessonEvent(0, True, "l1"))


def test_completed_at_is_set_once() -> None:
    later = NOW + timedelta(days=3)
    p = None
    for _ in range(4):
        p = _apply(p, 4, LessonEvent(hours_spent=0, mark_completed=True))
    assert p is not None
    assert p.completion_rate == 100.0
    assert p.completed_at == NOW

    p = _apply(p, 4, LessonEvent(hours_spent=0, mark_completed=True), now=later)
    assert p.completed_at == NOW
    assert p.last_accessed == later


@pytest.mark.parametrize("hours", [-0.5, math.nan, math.inf])
def test_rejects_invalid_hours(hours: float) -> None:
    with pytest.raises(ProgressValidationError):
        _apply(None, 4, LessonEvent(hours_spent=hours, mark_completed=False))


def test_rejects_negative_lesson_count() -> None:
    with pytest.raises(ProgressValidationError):
        _apply(None, -1, LessonEvent(hours_spent=0, mark_completed=False))


def test_rejects_unknown_mode() -> None:
    with pytest.raises(ProgressValidationError):
        _apply(None, 4, LessonEvent(hours_spent=0, mark_completed=False), mode="bogus")


def test_invalid_event_leaves_input_untouched() -> None:
    current = CourseProgress(user_id="u1", course_id="c1", lessons_completed=1)
    with pytest.raises(ProgressValidationError):
        _apply(current, 4, LessonEvent(hours_spent=-1, mark_completed=True))
    assert current.lessons_completed == 1


def test_warns_when_rate_exceeds_100(caplog: pytest.LogCaptureFixture) -> None:
    current = CourseProgress(user_id="u1", course_id="c1", lessons_completed=4)
    with caplog.at_level("WARNING", logger="app.services.course_progress"):
        _apply(current, 4, LessonEvent(hours_spent=0, mark_completed=True))
    assert "above 100" in caplog.text


def test_rate_formula_is_deterministic() -> None:
    event = LessonEvent(hours_spent=1, mark_completed=True)
    first = _apply(None, 3, event)
    second = _apply(None, 3, event)
    assert first == second
    assert first.completion_rate == pytest.approx(100 / 3)


def test_four_lesson_course_first_completion() -> None:
    p = _apply(None, 4, LessonEvent(hours_spent=2.5, mark_completed=True))
    assert (p.lessons_completed, p.hours_spent, p.completion_rate) == (1, 2.5, 25.0)


def test_double_completion_increments_twice_in_counter_mode() -> None:
    event = LessonEvent(hours_spent=0, mark_completed=True, lesson_id="l1")
    p = _apply(_apply(None, 4, event), 4, event)
    assert p.lessons_completed == 2
    assert p.completion_rate == 50.0


def test_timestamps_created_once_updated_every_event() -> None:
    first = _apply(None, 4, LessonEvent(hours_spent=1, mark_completed=False))
    assert first.created_at == NOW
    assert first.updated_at == NOW

    later = NOW + timedelta(days=2)
    second = _apply(first, 4, LessonEvent(hours_spent=1, mark_completed=True), now=later)
    assert second.created_at == NOW
    assert second.updated_at == later
