"""PostgreSQL implementation of CatalogRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.engine import execute
from app.db.tables import (
    CourseRow,
    LessonRow,
    QuestionRow,
    TestAccessPolicyRow,
    TestRow,
)
from app.models.assessment import Question, Test, TestAccessPolicy
from app.models.course import Course, Lesson


class PgCatalogRepo:
    """Satisfies the CatalogRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_course(self, course_id: str) -> Course | None:
        stmt = select(CourseRow).where(CourseRow.id == course_id)
        row = (await execute(self._session, stmt)).scalar_one_or_none()
        if row is None:
            return None
        return Course(
            id=row.id,
            title=row.title,
            author_id=row.author_id,
            admin_ids=frozenset(row.admin_ids or ()),
        )

    async def list_lessons(self, course_id: str) -> list[Lesson]:
        stmt = (
            select(LessonRow)
            .where(LessonRow.course_id == course_id)
            .order_by(LessonRow.sequence_order)
        )
        rows = (await execute(self._session, stmt)).scalars().all()
        return [
            Lesson(
                id=r.id,
                course_id=r.course_id,
                title=r.title,
                sequence_order=r.sequence_order,
            )
            for r in rows
        ]

    async def get_test(self, test_id: str) -> Test | None:
        stmt = select(TestRow).where(TestRow.id == test_id)
        row = (await execute(self._session, stmt)).scalar_one_or_none()
        if row is None:
            return None
        return Test(
            id=row.id, title=row.title, author_id=row.author_id, course_id=row.course_id
        )

    async def list_questions(self, test_id: str) -> list[Question]:
        stmt = (
            select(QuestionRow)
            .where(QuestionRow.test_id == test_id)
            .order_by(QuestionRow.sequence_order)
        )
        rows = (await execute(self._session, stmt)).scalars().all()
        return [
            Question(
                id=r.id,
                test_id=r.test_id,
                prompt=r.prompt,
                options=tuple(r.options),
                correct_option=r.correct_option,
                sequence_order=r.sequence_order,
            )
            for r in rows
        ]

    async def get_access_policy(self, test_id: str) -> TestAccessPolicy | None:
        stmt = select(TestAccessPolicyRow).where(TestAccessPolicyRow.test_id == test_id)
        row = (await execute(self._session, stmt)).scalar_one_or_none()
        if row is None:
            return None
        return TestAccessPolicy(test_id=row.test_id, attempts_allowed=row.attempts_allowed)
