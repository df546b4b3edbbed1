"""Read-only rollups over stored progress records.

Nothing here mutates state or holds invariants of its own; every figure
is a count, sum or mean over records the trackers produced.  Empty inputs
produce zeros rather than NaN.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from app.models.assessment import Test
from app.models.course import Course, Lesson
from app.models.progress import (
    CourseProgress,
    LoginEvent,
    ProgressOverview,
    TestAttemptProgress,
    UserActivity,
)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _utc_date(moment: datetime) -> str:
    return moment.astimezone(UTC).date().isoformat()


def is_course_completed(progress: CourseProgress) -> bool:
    return progress.completion_rate >= 100


def progress_overview(
    activity: UserActivity | None,
    course_progress: Iterable[CourseProgress],
    test_progress: Iterable[TestAttemptProgress],
) -> ProgressOverview:
    return ProgressOverview(
        total_streak_days=activity.streak_days if activity is not None else 0,
        total_courses_completed=sum(
            1 for p in course_progress if is_course_completed(p)
        ),
        total_tests_completed=sum(1 for p in test_progress if p.attempts_used > 0),
    )


def listing_rate(correct_answers: int, questions_answered: int) -> float:
    """Share of submitted answers that were correct, as shown in test lists."""
    if questions_answered == 0:
        return 0.0
    return correct_answers / questions_answered * 100


@dataclass(frozen=True, slots=True)
class LessonStat:
    lesson_id: str
    lesson_title: str
    completed: int
    total: int


@dataclass(frozen=True, slots=True)
class EnrollmentDay:
    date: str
    enrollments: int


def enrollment_trends(progresses: Iterable[CourseProgress]) -> list[EnrollmentDay]:
    """New progress records per UTC day, oldest first."""
    per_day = Counter(
        _utc_date(p.created_at) for p in progresses if p.created_at is not None
    )
    return [EnrollmentDay(date=d, enrollments=n) for d, n in sorted(per_day.items())]


@dataclass(frozen=True, slots=True)
class CourseAnalytics:
    course_id: str
    course_title: str
    total_enrollments: int
    completed: int
    avg_completion_rate: float
    avg_hours_spent: float
    lesson_stats: list[LessonStat]
    learners: list[CourseProgress]
    enrollments: list[EnrollmentDay]


def course_analytics(
    course: Course,
    lessons: Sequence[Lesson],
    progresses: Sequence[CourseProgress],
) -> CourseAnalytics:
    # A learner counts towards a lesson once their completion counter
    # reaches that lesson's position in the course.
    lesson_stats = [
        LessonStat(
            lesson_id=lesson.id,
            lesson_title=lesson.title,
            completed=sum(
                1 for p in progresses if p.lessons_completed >= lesson.sequence_order
            ),
            total=len(progresses),
        )
        for lesson in sorted(lessons, key=lambda l: l.sequence_order)
    ]
    return CourseAnalytics(
        course_id=course.id,
        course_title=course.title,
        total_enrollments=len(progresses),
        completed=sum(1 for p in progresses if is_course_completed(p)),
        avg_completion_rate=_mean([p.completion_rate for p in progresses]),
        avg_hours_spent=_mean([p.hours_spent for p in progresses]),
        lesson_stats=lesson_stats,
        learners=sorted(progresses, key=lambda p: p.user_id),
        enrollments=enrollment_trends(progresses),
    )


@dataclass(frozen=True, slots=True)
class AssessmentAnalytics:
    test_id: str
    test_title: str
    learners_attempted: int
    avg_score: float
    avg_attempts: float
    learners: list[TestAttemptProgress]


def assessment_analytics(
    test: Test, progresses: Sequence[TestAttemptProgress]
) -> AssessmentAnalytics:
    attempted = [p for p in progresses if p.attempts_used > 0]
    return AssessmentAnalytics(
        test_id=test.id,
        test_title=test.title,
        learners_attempted=len(attempted),
        avg_score=_mean([p.score for p in attempted]),
        avg_attempts=_mean([float(p.attempts_used) for p in attempted]),
        learners=sorted(attempted, key=lambda p: p.user_id),
    )


# ---------------------------------------------------------------------------
# Per-user periodic views
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CourseActivityDay:
    date: str
    courses: int
    lessons: int
    hours: float


@dataclass(frozen=True, slots=True)
class TestActivityDay:
    __test__ = False  # not a pytest test class

    date: str
    tests: int
    attempts: int
    avg_score: float


@dataclass(frozen=True, slots=True)
class UserActivitySummary:
    period_days: int
    since: datetime
    logins: list[LoginEvent]
    course_activity: list[CourseActivityDay]
    test_activity: list[TestActivityDay]


def user_activity_summary(
    logins: Iterable[LoginEvent],
    course_progress: Iterable[CourseProgress],
    test_progress: Iterable[TestAttemptProgress],
    *,
    since: datetime,
    period_days: int,
) -> UserActivitySummary:
    """Recent logins plus course and test records grouped by the UTC day
    they were last written, newest day first.

    A record appears once, on the day of its latest write, with its
    running totals; records never stamped with updated_at are left out.
    """
    courses_by_day: dict[str, list[CourseProgress]] = defaultdict(list)
    for p in course_progress:
        if p.updated_at is not None and p.updated_at >= since:
            courses_by_day[_utc_date(p.updated_at)].append(p)

    tests_by_day: dict[str, list[TestAttemptProgress]] = defaultdict(list)
    for p in test_progress:
        if p.updated_at is not None and p.updated_at >= since:
            tests_by_day[_utc_date(p.updated_at)].append(p)

    return UserActivitySummary(
        period_days=period_days,
        since=since,
        logins=sorted(
            (e for e in logins if e.login_time >= since),
            key=lambda e: e.login_time,
            reverse=True,
        ),
        course_activity=[
            CourseActivityDay(
                date=day,
                courses=len({p.course_id for p in records}),
                lessons=sum(p.lessons_completed for p in records),
                hours=sum(p.hours_spent for p in records),
            )
            for day, records in sorted(courses_by_day.items(), reverse=True)
        ],
        test_activity=[
            TestActivityDay(
                date=day,
                tests=len({p.test_id for p in records}),
                attempts=sum(p.attempts_used for p in records),
                avg_score=_mean([p.score for p in records]),
            )
            for day, records in sorted(tests_by_day.items(), reverse=True)
        ],
    )


@dataclass(frozen=True, slots=True)
class ProgressPeriod:
    start: datetime
    end: datetime
    course_progress: list[CourseProgress]
    test_progress: list[TestAttemptProgress]
    login_history: list[LoginEvent]


def progress_in_period(
    course_progress: Iterable[CourseProgress],
    test_progress: Iterable[TestAttemptProgress],
    logins: Iterable[LoginEvent],
    start: datetime,
    end: datetime,
) -> ProgressPeriod:
    """Records last written, and logins made, within [start, end)."""

    def inside(moment: datetime | None) -> bool:
        return moment is not None and start <= moment < end

    return ProgressPeriod(
        start=start,
        end=end,
        course_progress=sorted(
            (p for p in course_progress if inside(p.updated_at)),
            key=lambda p: p.course_id,
        ),
        test_progress=sorted(
            (p for p in test_progress if inside(p.updated_at)),
            key=lambda p: p.test_id,
        ),
        login_history=sorted(
            (e for e in logins if inside(e.login_time)),
            key=lambda e: e.login_time,
        ),
    )
