"""Per-user progress views.

  GET /v1/progress/monthly?months_back=4  -> monthly rollup (cached)
  GET /v1/progress/overview              -> lifetime totals (cached)
  GET /v1/progress/courses               -> caller's course records
  GET /v1/progress/tests                 -> caller's attempt records
  GET /v1/progress/period?start_date=YYYY-MM-DD&end_date=YYYY-MM-DD
                                         -> records and logins in a date range

The monthly rollup and the overview are READ-THROUGH cached under
progress:{user_id}:...  The write endpoints in courses.py, assessments.py
and activity.py delete progress:{user_id}:* after every successful write,
so the next GET recomputes from the Record Store.
"""

from __future__ import annotations

import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from app.api.activity import LoginOut
from app.api.courses import CourseProgressOut
from app.api.dependencies import get_cache, get_record_store, require_user
from app.core.config import SETTINGS
from app.models.principal import Principal
from app.models.progress import TestAttemptProgress
from app.repos.store import RecordStore
from app.services import progress_service
from app.services.analytics import listing_rate
from app.services.cache import CacheService, read_through, user_key
from app.services.errors import ProgressValidationError

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class MonthlyProgressOut(BaseModel):
    month: int
    year: int
    streak_days: int
    courses_completed: int
    login_frequency_by_day: dict[str, int]


class MonthlyProgressListOut(BaseModel):
    progress: list[MonthlyProgressOut]


class OverviewOut(BaseModel):
    total_streak_days: int
    total_courses_completed: int
    total_tests_completed: int


class AttemptSummaryOut(BaseModel):
    test_id: str
    questions_answered: int
    correct_answers: int
    score: float
    attempts_used: int
    listing_rate: float
    last_attempt: datetime.datetime | None
    updated_at: datetime.datetime | None

    @classmethod
    def from_model(cls, p: TestAttemptProgress) -> AttemptSummaryOut:
        return cls(
            test_id=p.test_id,
            questions_answered=p.questions_answered,
            correct_answers=p.correct_answers,
            score=p.score,
            attempts_used=p.attempts_used,
            listing_rate=listing_rate(p.correct_answers, p.questions_answered),
            last_attempt=p.last_attempt,
            updated_at=p.updated_at,
        )


class ProgressPeriodOut(BaseModel):
    start: datetime.datetime
    end: datetime.datetime
    course_progress: list[CourseProgressOut]
    test_progress: list[AttemptSummaryOut]
    login_history: list[LoginOut]


@router.get("/monthly", response_model=MonthlyProgressListOut)
async def get_monthly_progress(
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
    cache: Annotated[CacheService, Depends(get_cache)],
    months_back: Annotated[int, Query(ge=1, le=24)] = SETTINGS.monthly_progress_months,
) -> MonthlyProgressListOut:
    """Streak, completed courses and login histogram per calendar month.

    Newest month first.  Cache entries are per (user, months_back); all of
    them go when the user's next write invalidates progress:{user_id}:*.
    """

    async def compute() -> dict:
        months = await progress_service.get_monthly_progress(
            store, principal.user_id, months_back
        )
        return MonthlyProgressListOut(
            progress=[
                MonthlyProgressOut(
                    month=m.month,
                    year=m.year,
                    streak_days=m.streak_days,
                    courses_completed=m.courses_completed,
                    login_frequency_by_day=m.login_frequency_by_day,
                )
                for m in months
            ]
        ).model_dump(mode="json")

    payload = await read_through(
        cache,
        user_key(principal.user_id, "monthly", str(months_back)),
        SETTINGS.progress_cache_ttl,
        compute,
    )
    return MonthlyProgressListOut.model_validate(payload)


@router.get("/overview", response_model=OverviewOut)
async def get_overview(
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
    cache: Annotated[CacheService, Depends(get_cache)],
) -> OverviewOut:
    async def compute() -> dict:
        overview = await progress_service.get_progress_overview(
            store, principal.user_id
        )
        return OverviewOut(
            total_streak_days=overview.total_streak_days,
            total_courses_completed=overview.total_courses_completed,
            total_tests_completed=overview.total_tests_completed,
        ).model_dump(mode="json")

    payload = await read_through(
        cache,
        user_key(principal.user_id, "overview"),
        SETTINGS.progress_cache_ttl,
        compute,
    )
    return OverviewOut.model_validate(payload)


@router.get("/courses", response_model=list[CourseProgressOut])
async def list_course_progress(
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> list[CourseProgressOut]:
    records = await store.course_progress.list_by_user(principal.user_id)
    return [CourseProgressOut.from_model(p) for p in records]


@router.get("/tests", response_model=list[AttemptSummaryOut])
async def list_test_progress(
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> list[AttemptSummaryOut]:
    records = await store.test_progress.list_by_user(principal.user_id)
    return [AttemptSummaryOut.from_model(p) for p in records]


def _parse_date(name: str, raw: str | None) -> datetime.date | None:
    if raw is None:
        return None
    try:
        return datetime.date.fromisoformat(raw)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} format. Use YYYY-MM-DD",
        ) from None


def _day_start(day: datetime.date) -> datetime.datetime:
    return datetime.datetime(day.year, day.month, day.day, tzinfo=datetime.UTC)


@router.get("/period", response_model=ProgressPeriodOut)
async def get_progress_in_period(
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
    start_date: str | None = None,
    end_date: str | None = None,
) -> ProgressPeriodOut:
    """Course and test records last written, and logins made, in a date range.

    Both dates are UTC calendar days and both are included.  Without
    end_date the range ends now; without start_date it starts one calendar
    month before the end.
    """
    start_day = _parse_date("start_date", start_date)
    end_day = _parse_date("end_date", end_date)
    start = _day_start(start_day) if start_day is not None else None
    end = (
        _day_start(end_day + datetime.timedelta(days=1))
        if end_day is not None
        else None
    )

    try:
        period = await progress_service.get_progress_in_period(
            store, principal.user_id, start, end
        )
    except ProgressValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)
        ) from None

    return ProgressPeriodOut(
        start=period.start,
        end=period.end,
        course_progress=[CourseProgressOut.from_model(p) for p in period.course_progress],
        test_progress=[AttemptSummaryOut.from_model(p) for p in period.test_progress],
        login_history=[LoginOut.from_model(e) for e in period.login_history],
    )
