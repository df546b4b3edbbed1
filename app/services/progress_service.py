"""Progress service: load snapshot -> run tracker -> persist.

Each operation takes the user id explicitly, reads the current record
and the catalog data it needs from the Record Store, hands them to one of
the pure trackers and saves the result with the version it was read at.
Tracker errors are raised before anything is saved.  WriteConflictError
from the store propagates unchanged; retrying is the caller's decision.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from app.core.metrics import LESSON_EVENTS, LOGINS, RECORD_STORE_CONFLICTS, TEST_ATTEMPTS
from app.models.assessment import Test, TestAccessPolicy
from app.models.course import Course
from app.models.principal import Principal
from app.models.progress import (
    CourseProgress,
    LoginEvent,
    MonthlyProgress,
    ProgressOverview,
    TestAttemptProgress,
    UserActivity,
)
from app.repos.store import RecordStore
from app.services import activity, analytics
from app.services.authorization import Authorization
from app.services.course_progress import (
    CompletionMode,
    LessonEvent,
    apply_lesson_event,
    is_duplicate_completion,
)
from app.services.errors import (
    AttemptsExhaustedError,
    CourseNotFoundError,
    ProgressValidationError,
    TestNotFoundError,
    WriteConflictError,
)
from app.services.grader import Answer, GradeResult, grade_attempt

logger = logging.getLogger(__name__)


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(UTC)


def _expected(record) -> int | None:
    return record.version if record is not None else None


async def _require_course(store: RecordStore, course_id: str) -> Course:
    course = await store.catalog.get_course(course_id)
    if course is None:
        raise CourseNotFoundError(course_id)
    return course


async def _require_test(store: RecordStore, test_id: str) -> Test:
    test = await store.catalog.get_test(test_id)
    if test is None:
        raise TestNotFoundError(test_id)
    return test


# ---------------------------------------------------------------------------
# Course progress
# ---------------------------------------------------------------------------


async def update_course_progress(
    store: RecordStore,
    user_id: str,
    course_id: str,
    *,
    hours_spent: float,
    mark_completed: bool,
    lesson_id: str | None = None,
    mode: CompletionMode = "counter",
    now: datetime | None = None,
) -> CourseProgress:
    await _require_course(store, course_id)
    lessons = await store.catalog.list_lessons(course_id)
    if lesson_id is not None and lesson_id not in {l.id for l in lessons}:
        raise ProgressValidationError(
            f"lesson {lesson_id} does not belong to course {course_id}"
        )

    current = await store.course_progress.get(user_id, course_id)
    event = LessonEvent(
        hours_spent=hours_spent, mark_completed=mark_completed, lesson_id=lesson_id
    )
    updated = apply_lesson_event(
        current,
        len(lessons),
        event,
        _now(now),
        user_id=user_id,
        course_id=course_id,
        mode=mode,
    )

    try:
        saved = await store.course_progress.save(
            updated, expected_version=_expected(current)
        )
    except WriteConflictError:
        RECORD_STORE_CONFLICTS.labels(record="course_progress").inc()
        raise

    if not mark_completed:
        kind = "time_only"
    elif is_duplicate_completion(current, event):
        kind = "duplicate"
    else:
        kind = "completed"
    LESSON_EVENTS.labels(kind=kind).inc()
    logger.info(
        "Lesson progress user=%s course=%s completed=%d/%d rate=%.1f",
        user_id,
        course_id,
        saved.lessons_completed,
        len(lessons),
        saved.completion_rate,
        extra={"user_id": user_id, "course_id": course_id},
    )
    return saved


async def get_course_progress(
    store: RecordStore, user_id: str, course_id: str
) -> CourseProgress | None:
    await _require_course(store, course_id)
    return await store.course_progress.get(user_id, course_id)


# ---------------------------------------------------------------------------
# Test attempts
# ---------------------------------------------------------------------------


async def submit_test_attempt(
    store: RecordStore,
    user_id: str,
    test_id: str,
    answers: Sequence[Answer],
    *,
    now: datetime | None = None,
) -> GradeResult:
    await _require_test(store, test_id)
    questions = await store.catalog.list_questions(test_id)
    policy = await store.catalog.get_access_policy(test_id) or TestAccessPolicy(
        test_id=test_id
    )
    current = await store.test_progress.get(user_id, test_id)

    try:
        result = grade_attempt(
            current,
            policy,
            {q.id: q.correct_option for q in questions},
            answers,
            len(questions),
            _now(now),
            user_id=user_id,
            test_id=test_id,
        )
    except AttemptsExhaustedError as e:
        TEST_ATTEMPTS.labels(result="exhausted").inc()
        logger.warning(
            "Attempt rejected user=%s test=%s used=%d allowed=%d",
            user_id,
            test_id,
            e.attempts_used,
            e.attempts_allowed,
            extra={"user_id": user_id, "test_id": test_id},
        )
        raise

    try:
        saved = await store.test_progress.save(
            result.progress, expected_version=_expected(current)
        )
    except WriteConflictError:
        RECORD_STORE_CONFLICTS.labels(record="test_progress").inc()
        raise

    TEST_ATTEMPTS.labels(result="graded").inc()
    logger.info(
        "Attempt graded user=%s test=%s correct=%d/%d score=%.1f attempt=%d",
        user_id,
        test_id,
        saved.correct_answers,
        len(questions),
        saved.score,
        saved.attempts_used,
        extra={"user_id": user_id, "test_id": test_id},
    )
    return GradeResult(progress=saved, attempts_left=result.attempts_left)


async def get_test_progress(
    store: RecordStore, user_id: str, test_id: str
) -> tuple[TestAttemptProgress | None, TestAccessPolicy]:
    await _require_test(store, test_id)
    policy = await store.catalog.get_access_policy(test_id) or TestAccessPolicy(
        test_id=test_id
    )
    return await store.test_progress.get(user_id, test_id), policy


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


async def record_user_login(
    store: RecordStore, user_id: str, *, now: datetime | None = None
) -> UserActivity:
    now = _now(now)
    current = await store.activity.get(user_id)
    outcome = activity.streak_outcome(current, now)
    updated = activity.record_login(current, now, user_id=user_id)

    try:
        saved = await store.activity.save(updated, expected_version=_expected(current))
    except WriteConflictError:
        RECORD_STORE_CONFLICTS.labels(record="user_activity").inc()
        raise
    await store.logins.append(
        LoginEvent(user_id=user_id, login_time=now, streak_days=saved.streak_days)
    )

    LOGINS.labels(streak=outcome).inc()
    logger.info(
        "Login recorded user=%s streak=%d (%s)",
        user_id,
        saved.streak_days,
        outcome,
        extra={"user_id": user_id},
    )
    return saved


async def get_monthly_progress(
    store: RecordStore,
    user_id: str,
    months_back: int = 4,
    *,
    now: datetime | None = None,
) -> list[MonthlyProgress]:
    windows = activity.month_windows(_now(now), months_back)
    logins = await store.logins.list_by_user(
        user_id, since=windows[-1].start, until=windows[0].end
    )
    course_progress = await store.course_progress.list_by_user(user_id)
    return [activity.monthly_rollup(logins, course_progress, w) for w in windows]


async def get_progress_overview(store: RecordStore, user_id: str) -> ProgressOverview:
    return analytics.progress_overview(
        await store.activity.get(user_id),
        await store.course_progress.list_by_user(user_id),
        await store.test_progress.list_by_user(user_id),
    )


async def get_user_activity(
    store: RecordStore,
    user_id: str,
    days: int = 7,
    *,
    now: datetime | None = None,
) -> analytics.UserActivitySummary:
    """Logins and per-day course/test activity over the last `days` days."""
    if days < 1:
        raise ProgressValidationError(f"days must be >= 1 (got {days})")
    since = _now(now) - timedelta(days=days)
    return analytics.user_activity_summary(
        await store.logins.list_by_user(user_id, since=since),
        await store.course_progress.list_by_user(user_id),
        await store.test_progress.list_by_user(user_id),
        since=since,
        period_days=days,
    )


async def get_progress_in_period(
    store: RecordStore,
    user_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
    *,
    now: datetime | None = None,
) -> analytics.ProgressPeriod:
    """Progress records and logins in [start, end).

    end defaults to now and start to one calendar month before end.
    """
    end = end if end is not None else _now(now)
    start = start if start is not None else activity.months_before(end, 1)
    if start >= end:
        raise ProgressValidationError(
            f"start must be before end (got {start.isoformat()} >= {end.isoformat()})"
        )
    return analytics.progress_in_period(
        await store.course_progress.list_by_user(user_id),
        await store.test_progress.list_by_user(user_id),
        await store.logins.list_by_user(user_id, since=start, until=end),
        start,
        end,
    )


# ---------------------------------------------------------------------------
# Analytics (course/test administrators)
# ---------------------------------------------------------------------------


async def get_course_analytics(
    store: RecordStore,
    authz: Authorization,
    principal: Principal,
    course_id: str,
) -> analytics.CourseAnalytics:
    course = await _require_course(store, course_id)
    if not authz.has_course_admin_rights(principal, course):
        logger.warning(
            "Course analytics denied user=%s course=%s", principal.user_id, course_id
        )
        raise PermissionError("course admin rights required")
    return analytics.course_analytics(
        course,
        await store.catalog.list_lessons(course_id),
        await store.course_progress.list_by_course(course_id),
    )


async def get_test_analytics(
    store: RecordStore,
    authz: Authorization,
    principal: Principal,
    test_id: str,
) -> analytics.AssessmentAnalytics:
    test = await _require_test(store, test_id)
    allowed = authz.has_test_admin_rights(principal, test)
    if not allowed and test.course_id is not None:
        course = await store.catalog.get_course(test.course_id)
        allowed = course is not None and authz.has_course_admin_rights(
            principal, course
        )
    if not allowed:
        logger.warning(
            "Test analytics denied user=%s test=%s", principal.user_id, test_id
        )
        raise PermissionError("test admin rights required")
    return analytics.assessment_analytics(
        test, await store.test_progress.list_by_test(test_id)
    )
