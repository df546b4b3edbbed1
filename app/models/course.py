from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class Course:
    id: str
    title: str
    author_id: str | None = None
    admin_ids: frozenset[str] = field(default_factory=frozenset)

    @staticmethod
    def new(
        *,
        title: str,
        author_id: str | None = None,
        admin_ids: frozenset[str] = frozenset(),
    ) -> Course:
        return Course(
            id=str(uuid4()), title=title, author_id=author_id, admin_ids=admin_ids
        )


@dataclass(frozen=True, slots=True)
class Lesson:
    id: str
    course_id: str
    title: str
    sequence_order: int

    @staticmethod
    def new(*, course_id: str, title: str, sequence_order: int) -> Lesson:
        return Lesson(
            id=str(uuid4()),
            course_id=course_id,
            title=title,
            sequence_order=sequence_order,
        )
