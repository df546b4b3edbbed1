"""Test Attempt Grader.

grade_attempt checks the attempt quota, grades single-correct-choice
answers against the question bank and returns the updated attempt record.
It raises before producing any state, so a rejected attempt leaves the
stored record exactly as it was.

Scoring divides by the test's total question count, not by the number of
answers submitted: 3 correct answers on a 10 question test score 30.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from app.models.assessment import TestAccessPolicy
from app.models.progress import TestAttemptProgress
from app.services.errors import AttemptsExhaustedError, ProgressValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Answer:
    question_id: str
    choice: int


@dataclass(frozen=True, slots=True)
class GradeResult:
    progress: TestAttemptProgress
    attempts_left: int | None  # None when the policy is unlimited


def score(correct_answers: int, total_questions: int) -> float:
    if total_questions == 0:
        return 0.0
    return correct_answers / total_questions * 100


def attempts_left(policy: TestAccessPolicy, attempts_used: int) -> int | None:
    if policy.is_unlimited:
        return None
    return policy.attempts_allowed - attempts_used


def _validate(answers: Sequence[Answer], total_questions: int) -> None:
    if total_questions < 0:
        raise ProgressValidationError(
            f"total_questions must be >= 0 (got {total_questions})"
        )
    seen: set[str] = set()
    for answer in answers:
        if isinstance(answer.choice, bool) or not isinstance(answer.choice, int):
            raise ProgressValidationError(
                f"choice for question {answer.question_id} must be an integer"
            )
        if answer.choice < 0:
            raise ProgressValidationError(
                f"choice for question {answer.question_id} must be >= 0"
            )
        if answer.question_id in seen:
            raise ProgressValidationError(
                f"question {answer.question_id} answered more than once"
            )
        seen.add(answer.question_id)


def check_quota(
    current: TestAttemptProgress | None, policy: TestAccessPolicy
) -> None:
    used = current.attempts_used if current is not None else 0
    if not policy.is_unlimited and used >= policy.attempts_allowed:
        raise AttemptsExhaustedError(
            test_id=policy.test_id,
            attempts_allowed=policy.attempts_allowed,
            attempts_used=used,
        )


def grade_attempt(
    current: TestAttemptProgress | None,
    policy: TestAccessPolicy,
    question_bank: Mapping[str, int],
    submitted_answers: Sequence[Answer],
    total_questions: int,
    now: datetime,
    *,
    user_id: str,
    test_id: str,
) -> GradeResult:
    _validate(submitted_answers, total_questions)
    check_quota(current, policy)

    if current is None:
        current = TestAttemptProgress(user_id=user_id, test_id=test_id, created_at=now)

    correct = 0
    for answer in submitted_answers:
        expected = question_bank.get(answer.question_id)
        if expected is None:
            # stale or unknown question reference
            logger.debug(
                "Skipping unknown question=%s test=%s", answer.question_id, test_id
            )
            continue
        if answer.choice == expected:
            correct += 1

    updated = replace(
        current,
        questions_answered=len(submitted_answers),
        correct_answers=correct,
        score=score(correct, total_questions),
        attempts_used=current.attempts_used + 1,
        last_attempt=now,
        updated_at=now,
    )
    return GradeResult(
        progress=updated,
        attempts_left=attempts_left(policy, updated.attempts_used),
    )
