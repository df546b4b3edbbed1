"""PostgreSQL implementations of the progress repositories.

Inserts race on the primary key; updates carry a version predicate.  Both
losers surface as WriteConflictError, matching the in-memory repos.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.engine import execute
from app.db.tables import (
    CourseProgressRow,
    LoginEventRow,
    TestProgressRow,
    UserActivityRow,
)
from app.models.progress import (
    CourseProgress,
    LoginEvent,
    TestAttemptProgress,
    UserActivity,
)
from app.services.errors import WriteConflictError


async def _insert(session: AsyncSession, row, record: str, key: tuple[str, ...]):
    try:
        async with session.begin_nested():
            session.add(row)
            await session.flush()
    except IntegrityError:
        raise WriteConflictError(record, key) from None


class PgCourseProgressRepo:
    """Satisfies the CourseProgressRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str, course_id: str) -> CourseProgress | None:
        stmt = select(CourseProgressRow).where(
            CourseProgressRow.user_id == user_id,
            CourseProgressRow.course_id == course_id,
        )
        row = (await execute(self._session, stmt)).scalar_one_or_none()
        return _row_to_course_progress(row) if row is not None else None

    async def save(
        self, progress: CourseProgress, *, expected_version: int | None
    ) -> CourseProgress:
        key = (progress.user_id, progress.course_id)
        values = {
            "lessons_completed": progress.lessons_completed,
            "hours_spent": progress.hours_spent,
            "completion_rate": progress.completion_rate,
            "last_accessed": progress.last_accessed,
            "completed_at": progress.completed_at,
            "completed_lesson_ids": sorted(progress.completed_lesson_ids),
            "created_at": progress.created_at,
            "updated_at": progress.updated_at,
        }
        if expected_version is None:
            row = CourseProgressRow(
                user_id=progress.user_id,
                course_id=progress.course_id,
                version=1,
                **values,
            )
            await _insert(self._session, row, "course_progress", key)
            return _row_to_course_progress(row)

        stmt = (
            update(CourseProgressRow)
            .where(
                CourseProgressRow.user_id == progress.user_id,
                CourseProgressRow.course_id == progress.course_id,
                CourseProgressRow.version == expected_version,
            )
            .values(version=expected_version + 1, **values)
        )
        result = await execute(self._session, stmt)
        if result.rowcount == 0:
            raise WriteConflictError("course_progress", key)
        return replace(progress, version=expected_version + 1)

    async def list_by_user(self, user_id: str) -> list[CourseProgress]:
        stmt = select(CourseProgressRow).where(CourseProgressRow.user_id == user_id)
        rows = (await execute(self._session, stmt)).scalars().all()
        return [_row_to_course_progress(r) for r in rows]

    async def list_by_course(self, course_id: str) -> list[CourseProgress]:
        stmt = select(CourseProgressRow).where(
            CourseProgressRow.course_id == course_id
        )
        rows = (await execute(self._session, stmt)).scalars().all()
        return [_row_to_course_progress(r) for r in rows]


class PgTestProgressRepo:
    """Satisfies the TestProgressRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str, test_id: str) -> TestAttemptProgress | None:
        stmt = select(TestProgressRow).where(
            TestProgressRow.user_id == user_id,
            TestProgressRow.test_id == test_id,
        )
        row = (await execute(self._session, stmt)).scalar_one_or_none()
        return _row_to_test_progress(row) if row is not None else None

    async def save(
        self, progress: TestAttemptProgress, *, expected_version: int | None
    ) -> TestAttemptProgress:
        key = (progress.user_id, progress.test_id)
        values = {
            "questions_answered": progress.questions_answered,
            "correct_answers": progress.correct_answers,
            "score": progress.score,
            "attempts_used": progress.attempts_used,
            "last_attempt": progress.last_attempt,
            "created_at": progress.created_at,
            "updated_at": progress.updated_at,
        }
        if expected_version is None:
            row = TestProgressRow(
                user_id=progress.user_id,
                test_id=progress.test_id,
                version=1,
                **values,
            )
            await _insert(self._session, row, "test_progress", key)
            return _row_to_test_progress(row)

        stmt = (
            update(TestProgressRow)
            .where(
                TestProgressRow.user_id == progress.user_id,
                TestProgressRow.test_id == progress.test_id,
                TestProgressRow.version == expected_version,
            )
            .values(version=expected_version + 1, **values)
        )
        result = await execute(self._session, stmt)
        if result.rowcount == 0:
            raise WriteConflictError("test_progress", key)
        return replace(progress, version=expected_version + 1)

    async def list_by_user(self, user_id: str) -> list[TestAttemptProgress]:
        stmt = select(TestProgressRow).where(TestProgressRow.user_id == user_id)
        rows = (await execute(self._session, stmt)).scalars().all()
        return [_row_to_test_progress(r) for r in rows]

    async def list_by_test(self, test_id: str) -> list[TestAttemptProgress]:
        stmt = select(TestProgressRow).where(TestProgressRow.test_id == test_id)
        rows = (await execute(self._session, stmt)).scalars().all()
        return [_row_to_test_progress(r) for r in rows]


class PgUserActivityRepo:
    """Satisfies the UserActivityRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> UserActivity | None:
        stmt = select(UserActivityRow).where(UserActivityRow.user_id == user_id)
        row = (await execute(self._session, stmt)).scalar_one_or_none()
        return _row_to_activity(row) if row is not None else None

    async def save(
        self, activity: UserActivity, *, expected_version: int | None
    ) -> UserActivity:
        key = (activity.user_id,)
        if expected_version is None:
            row = UserActivityRow(
                user_id=activity.user_id,
                last_active=activity.last_active,
                streak_days=activity.streak_days,
                version=1,
            )
            await _insert(self._session, row, "user_activity", key)
            return _row_to_activity(row)

        stmt = (
            update(UserActivityRow)
            .where(
                UserActivityRow.user_id == activity.user_id,
                UserActivityRow.version == expected_version,
            )
            .values(
                last_active=activity.last_active,
                streak_days=activity.streak_days,
                version=expected_version + 1,
            )
        )
        result = await execute(self._session, stmt)
        if result.rowcount == 0:
            raise WriteConflictError("user_activity", key)
        return replace(activity, version=expected_version + 1)


class PgLoginEventRepo:
    """Satisfies the LoginEventRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, event: LoginEvent) -> None:
        self._session.add(
            LoginEventRow(
                user_id=event.user_id,
                login_time=event.login_time,
                streak_days=event.streak_days,
            )
        )
        await self._session.flush()

    async def list_by_user(
        self,
        user_id: str,
        *,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[LoginEvent]:
        stmt = select(LoginEventRow).where(LoginEventRow.user_id == user_id)
        if since is not None:
            stmt = stmt.where(LoginEventRow.login_time >= since)
        if until is not None:
            stmt = stmt.where(LoginEventRow.login_time < until)
        stmt = stmt.order_by(LoginEventRow.login_time)
        rows = (await execute(self._session, stmt)).scalars().all()
        return [
            LoginEvent(
                user_id=r.user_id, login_time=r.login_time, streak_days=r.streak_days
            )
            for r in rows
        ]


def _row_to_course_progress(row: CourseProgressRow) -> CourseProgress:
    return CourseProgress(
        user_id=row.user_id,
        course_id=row.course_id,
        lessons_completed=row.lessons_completed,
        hours_spent=row.hours_spent,
        completion_rate=row.completion_rate,
        last_accessed=row.last_accessed,
        completed_at=row.completed_at,
        completed_lesson_ids=frozenset(row.completed_lesson_ids or ()),
        created_at=row.created_at,
        updated_at=row.updated_at,
        version=row.version,
    )


def _row_to_test_progress(row: TestProgressRow) -> TestAttemptProgress:
    return TestAttemptProgress(
        user_id=row.user_id,
        test_id=row.test_id,
        questions_answered=row.questions_answered,
        correct_answers=row.correct_answers,
        score=row.score,
        attempts_used=row.attempts_used,
        last_attempt=row.last_attempt,
        created_at=row.created_at,
        updated_at=row.updated_at,
        version=row.version,
    )


def _row_to_activity(row: UserActivityRow) -> UserActivity:
    return UserActivity(
        user_id=row.user_id,
        last_active=row.last_active,
        streak_days=row.streak_days,
        version=row.version,
    )
