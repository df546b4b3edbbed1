"""Record Store: the five repositories the progress engine reads and writes.

The in-memory store is a module-level singleton used when DATABASE_URL is
not configured; the PostgreSQL store is built per request around the
request's AsyncSession.

after_commit() defers side effects such as cache invalidation until the
writes are durable: immediately for the in-memory store, after the session
commits for PostgreSQL.  A rolled-back request never runs them.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.assessment import Question, Test, TestAccessPolicy
from app.models.course import Course, Lesson
from app.repos.catalog_repo import CatalogRepo, InMemoryCatalogRepo
from app.repos.pg_catalog_repo import PgCatalogRepo
from app.repos.pg_progress_repo import (
    PgCourseProgressRepo,
    PgLoginEventRepo,
    PgTestProgressRepo,
    PgUserActivityRepo,
)
from app.repos.progress_repo import (
    CourseProgressRepo,
    InMemoryCourseProgressRepo,
    InMemoryLoginEventRepo,
    InMemoryTestProgressRepo,
    InMemoryUserActivityRepo,
    LoginEventRepo,
    TestProgressRepo,
    UserActivityRepo,
)

logger = logging.getLogger(__name__)

AfterCommit = Callable[[], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class RecordStore:
    catalog: CatalogRepo
    course_progress: CourseProgressRepo
    test_progress: TestProgressRepo
    activity: UserActivityRepo
    logins: LoginEventRepo
    # None when writes are visible as soon as they are made
    pending_after_commit: list[AfterCommit] | None = None

    async def after_commit(self, callback: AfterCommit) -> None:
        if self.pending_after_commit is None:
            await callback()
        else:
            self.pending_after_commit.append(callback)

    async def committed(self) -> None:
        """Run the callbacks deferred by after_commit, in order."""
        for callback in self.pending_after_commit or ():
            await callback()


def in_memory_store() -> RecordStore:
    return RecordStore(
        catalog=InMemoryCatalogRepo(),
        course_progress=InMemoryCourseProgressRepo(),
        test_progress=InMemoryTestProgressRepo(),
        activity=InMemoryUserActivityRepo(),
        logins=InMemoryLoginEventRepo(),
    )


def pg_store(session: AsyncSession) -> RecordStore:
    return RecordStore(
        catalog=PgCatalogRepo(session),
        course_progress=PgCourseProgressRepo(session),
        test_progress=PgTestProgressRepo(session),
        activity=PgUserActivityRepo(session),
        logins=PgLoginEventRepo(session),
        pending_after_commit=[],
    )


SAMPLE_COURSE_ID = "intro-to-python"
SAMPLE_TEST_ID = "python-basics-quiz"


def seed_sample_catalog(catalog: InMemoryCatalogRepo) -> None:
    """Seed a sample course and test for development."""
    if catalog.has_course(SAMPLE_COURSE_ID):
        return
    catalog.add_course(
        Course(id=SAMPLE_COURSE_ID, title="Introduction to Python"),
        [
            Lesson(
                id=f"{SAMPLE_COURSE_ID}-{n}",
                course_id=SAMPLE_COURSE_ID,
                title=title,
                sequence_order=n,
            )
            for n, title in enumerate(
                ["Variables", "Control flow", "Functions", "Modules"], start=1
            )
        ],
    )
    catalog.add_test(
        Test(id=SAMPLE_TEST_ID, title="Python basics", course_id=SAMPLE_COURSE_ID),
        [
            Question(
                id=f"{SAMPLE_TEST_ID}-q{n}",
                test_id=SAMPLE_TEST_ID,
                prompt=prompt,
                options=options,
                correct_option=correct,
                sequence_order=n,
            )
            for n, (prompt, options, correct) in enumerate(
                [
                    ("len([1, 2, 3])?", ("2", "3", "4"), 1),
                    ("Type of 1.0?", ("int", "float", "str"), 1),
                    ("Keyword for functions?", ("def", "fun", "fn"), 0),
                ],
                start=1,
            )
        ],
        TestAccessPolicy(test_id=SAMPLE_TEST_ID, attempts_allowed=3),
    )
    logger.info("Seeded sample catalog course=%s test=%s", SAMPLE_COURSE_ID, SAMPLE_TEST_ID)
