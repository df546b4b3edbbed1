"""Read-only course/test catalog as seen by the progress engine.

The engine only consumes lesson counts, question answer keys and access
policies; creating and editing catalog content belongs to course
administration.  The in-memory repo exposes add_* helpers for seeding and
tests.
"""

from __future__ import annotations

from typing import Protocol

from app.models.assessment import Question, Test, TestAccessPolicy
from app.models.course import Course, Lesson


class CatalogRepo(Protocol):
    async def get_course(self, course_id: str) -> Course | None: ...
    async def list_lessons(self, course_id: str) -> list[Lesson]: ...
    async def get_test(self, test_id: str) -> Test | None: ...
    async def list_questions(self, test_id: str) -> list[Question]: ...
    async def get_access_policy(self, test_id: str) -> TestAccessPolicy | None: ...


class InMemoryCatalogRepo:
    def __init__(self) -> None:
        self._courses: dict[str, Course] = {}
        self._lessons: dict[str, list[Lesson]] = {}
        self._tests: dict[str, Test] = {}
        self._questions: dict[str, list[Question]] = {}
        self._policies: dict[str, TestAccessPolicy] = {}

    async def get_course(self, course_id: str) -> Course | None:
        return self._courses.get(course_id)

    async def list_lessons(self, course_id: str) -> list[Lesson]:
        return sorted(
            self._lessons.get(course_id, []), key=lambda l: l.sequence_order
        )

    async def get_test(self, test_id: str) -> Test | None:
        return self._tests.get(test_id)

    async def list_questions(self, test_id: str) -> list[Question]:
        return sorted(
            self._questions.get(test_id, []), key=lambda q: q.sequence_order
        )

    async def get_access_policy(self, test_id: str) -> TestAccessPolicy | None:
        return self._policies.get(test_id)

    # --- seeding ---

    def has_course(self, course_id: str) -> bool:
        return course_id in self._courses

    def add_course(self, course: Course, lessons: list[Lesson] | None = None) -> None:
        if course.id in self._courses:
            raise ValueError("course already exists")
        self._courses[course.id] = course
        self._lessons[course.id] = list(lessons or [])

    def add_test(
        self,
        test: Test,
        questions: list[Question] | None = None,
        policy: TestAccessPolicy | None = None,
    ) -> None:
        if test.id in self._tests:
            raise ValueError("test already exists")
        self._tests[test.id] = test
        self._questions[test.id] = list(questions or [])
        self._policies[test.id] = policy or TestAccessPolicy(test_id=test.id)

    def clear(self) -> None:
        self._courses.clear()
        self._lessons.clear()
        self._tests.clear()
        self._questions.clear()
        self._policies.clear()
