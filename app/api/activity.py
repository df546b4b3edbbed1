"""Login activity endpoints.

  POST /v1/activity/login   -> record a sign-in, update the 48h streak
  GET  /v1/activity?days=7  -> recent logins and per-day course/test activity

The login endpoint is called by the platform login flow right after a
successful sign-in, with the freshly issued access token.  It updates the
presence streak and appends to the login log that feeds the rollups.
"""

from __future__ import annotations

import datetime
from functools import partial
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.api.dependencies import get_cache, get_record_store, require_user
from app.models.principal import Principal
from app.models.progress import LoginEvent
from app.repos.store import RecordStore
from app.services import progress_service
from app.services.analytics import UserActivitySummary
from app.services.cache import CacheService, invalidate_user

router = APIRouter(prefix="/v1/activity", tags=["activity"])


class ActivityOut(BaseModel):
    user_id: str
    streak_days: int
    last_active: datetime.datetime


class LoginOut(BaseModel):
    login_time: datetime.datetime
    streak_days: int

    @classmethod
    def from_model(cls, e: LoginEvent) -> LoginOut:
        return cls(login_time=e.login_time, streak_days=e.streak_days)


class CourseActivityOut(BaseModel):
    date: str
    courses: int
    lessons: int
    hours: float


class AttemptActivityOut(BaseModel):
    date: str
    tests: int
    attempts: int
    avg_score: float


class UserActivityOut(BaseModel):
    period_days: int
    since: datetime.datetime
    logins: list[LoginOut]
    course_activity: list[CourseActivityOut]
    test_activity: list[AttemptActivityOut]

    @classmethod
    def from_model(cls, s: UserActivitySummary) -> UserActivityOut:
        return cls(
            period_days=s.period_days,
            since=s.since,
            logins=[LoginOut.from_model(e) for e in s.logins],
            course_activity=[
                CourseActivityOut(
                    date=d.date, courses=d.courses, lessons=d.lessons, hours=d.hours
                )
                for d in s.course_activity
            ],
            test_activity=[
                AttemptActivityOut(
                    date=d.date,
                    tests=d.tests,
                    attempts=d.attempts,
                    avg_score=d.avg_score,
                )
                for d in s.test_activity
            ],
        )


@router.post("/login", response_model=ActivityOut)
async def record_login(
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
    cache: Annotated[CacheService, Depends(get_cache)],
) -> ActivityOut:
    activity = await progress_service.record_user_login(store, principal.user_id)
    await store.after_commit(partial(invalidate_user, cache, principal.user_id))
    return ActivityOut(
        user_id=activity.user_id,
        streak_days=activity.streak_days,
        last_active=activity.last_active,
    )


@router.get("", response_model=UserActivityOut)
async def get_activity(
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
    days: Annotated[int, Query(ge=1, le=365)] = 7,
) -> UserActivityOut:
    """Caller's logins and course/test activity over the last `days` days.

    Course and test records are grouped by the UTC day they were last
    written, newest first.
    """
    summary = await progress_service.get_user_activity(store, principal.user_id, days)
    return UserActivityOut.from_model(summary)
