from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class Test:
    __test__ = False  # not a pytest test class

    id: str
    title: str
    author_id: str | None = None
    course_id: str | None = None

    @staticmethod
    def new(
        *, title: str, author_id: str | None = None, course_id: str | None = None
    ) -> Test:
        return Test(
            id=str(uuid4()), title=title, author_id=author_id, course_id=course_id
        )


@dataclass(frozen=True, slots=True)
class Question:
    """Single-correct-choice multiple choice question."""

    id: str
    test_id: str
    prompt: str
    options: tuple[str, ...]
    correct_option: int
    sequence_order: int

    @staticmethod
    def new(
        *,
        test_id: str,
        prompt: str,
        options: tuple[str, ...],
        correct_option: int,
        sequence_order: int,
    ) -> Question:
        return Question(
            id=str(uuid4()),
            test_id=test_id,
            prompt=prompt,
            options=options,
            correct_option=correct_option,
            sequence_order=sequence_order,
        )


@dataclass(frozen=True, slots=True)
class TestAccessPolicy:
    """attempts_allowed == 0 means unlimited attempts."""

    __test__ = False

    test_id: str
    attempts_allowed: int = 1

    @property
    def is_unlimited(self) -> bool:
        return self.attempts_allowed == 0
