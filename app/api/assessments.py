"""Test attempt endpoints.

  POST /v1/tests/{test_id}/attempts   -> grade one attempt
  GET  /v1/tests/{test_id}/attempts   -> caller's attempt record
  GET  /v1/tests/{test_id}/analytics  -> per-test rollup (test/course admins)

A rejected attempt (403, no attempts left) stores nothing.
"""

from __future__ import annotations

import datetime
from functools import partial
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, StrictInt

from app.api.dependencies import (
    get_authorization,
    get_cache,
    get_record_store,
    require_user,
)
from app.models.principal import Principal
from app.models.progress import TestAttemptProgress
from app.repos.store import RecordStore
from app.services import progress_service
from app.services.analytics import AssessmentAnalytics
from app.services.authorization import Authorization
from app.services.cache import CacheService, invalidate_user
from app.services.errors import (
    AttemptsExhaustedError,
    ProgressValidationError,
    TestNotFoundError,
)
from app.services.grader import Answer, attempts_left

router = APIRouter(prefix="/v1/tests", tags=["tests"])


class AnswerIn(BaseModel):
    question_id: str
    choice: StrictInt = Field(ge=0)


class AttemptIn(BaseModel):
    answers: list[AnswerIn]


class AttemptOut(BaseModel):
    user_id: str
    test_id: str
    questions_answered: int
    correct_answers: int
    score: float
    attempts_used: int
    attempts_left: int | None
    last_attempt: datetime.datetime | None

    @classmethod
    def from_model(
        cls, p: TestAttemptProgress, left: int | None
    ) -> AttemptOut:
        return cls(
            user_id=p.user_id,
            test_id=p.test_id,
            questions_answered=p.questions_answered,
            correct_answers=p.correct_answers,
            score=p.score,
            attempts_used=p.attempts_used,
            attempts_left=left,
            last_attempt=p.last_attempt,
        )


class LearnerScoreOut(BaseModel):
    user_id: str
    score: float
    attempts_used: int
    last_attempt: datetime.datetime | None


class AssessmentAnalyticsOut(BaseModel):
    test_id: str
    test_title: str
    learners_attempted: int
    avg_score: float
    avg_attempts: float
    learners: list[LearnerScoreOut]

    @classmethod
    def from_model(cls, a: AssessmentAnalytics) -> AssessmentAnalyticsOut:
        return cls(
            test_id=a.test_id,
            test_title=a.test_title,
            learners_attempted=a.learners_attempted,
            avg_score=a.avg_score,
            avg_attempts=a.avg_attempts,
            learners=[
                LearnerScoreOut(
                    user_id=p.user_id,
                    score=p.score,
                    attempts_used=p.attempts_used,
                    last_attempt=p.last_attempt,
                )
                for p in a.learners
            ],
        )


@router.post("/{test_id}/attempts", response_model=AttemptOut)
async def submit_attempt(
    test_id: str,
    body: AttemptIn,
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
    cache: Annotated[CacheService, Depends(get_cache)],
) -> AttemptOut:
    answers = [Answer(question_id=a.question_id, choice=a.choice) for a in body.answers]
    try:
        result = await progress_service.submit_test_attempt(
            store, principal.user_id, test_id, answers
        )
    except TestNotFoundError:
        raise HTTPException(status_code=404, detail="test not found") from None
    except AttemptsExhaustedError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="no attempts left"
        ) from None
    except ProgressValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from None

    await store.after_commit(partial(invalidate_user, cache, principal.user_id))
    return AttemptOut.from_model(result.progress, result.attempts_left)


@router.get("/{test_id}/attempts", response_model=AttemptOut)
async def get_attempt(
    test_id: str,
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> AttemptOut:
    try:
        progress, policy = await progress_service.get_test_progress(
            store, principal.user_id, test_id
        )
    except TestNotFoundError:
        raise HTTPException(status_code=404, detail="test not found") from None
    if progress is None:
        raise HTTPException(status_code=404, detail="no attempts recorded")
    return AttemptOut.from_model(progress, attempts_left(policy, progress.attempts_used))


@router.get("/{test_id}/analytics", response_model=AssessmentAnalyticsOut)
async def get_test_analytics(
    test_id: str,
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
    authz: Annotated[Authorization, Depends(get_authorization)],
) -> AssessmentAnalyticsOut:
    try:
        result = await progress_service.get_test_analytics(
            store, authz, principal, test_id
        )
    except TestNotFoundError:
        raise HTTPException(status_code=404, detail="test not found") from None
    except PermissionError:
        raise HTTPException(
            status_code=403, detail="Insufficient test permissions"
        ) from None
    return AssessmentAnalyticsOut.from_model(result)
