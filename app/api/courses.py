"""Course progress endpoints.

  POST /v1/courses/{course_id}/progress   -> apply one lesson event
  GET  /v1/courses/{course_id}/progress   -> caller's current record
  GET  /v1/courses/{course_id}/analytics  -> per-course rollup (course admins)

Every write drops the caller's cached monthly/overview rollups.
"""

from __future__ import annotations

import datetime
from functools import partial
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from app.api.dependencies import (
    get_authorization,
    get_cache,
    get_record_store,
    require_user,
)
from app.core.config import SETTINGS
from app.models.principal import Principal
from app.models.progress import CourseProgress
from app.repos.store import RecordStore
from app.services import progress_service
from app.services.analytics import CourseAnalytics
from app.services.authorization import Authorization
from app.services.cache import CacheService, invalidate_user
from app.services.errors import CourseNotFoundError, ProgressValidationError

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class LessonProgressIn(BaseModel):
    lesson_id: str | None = None
    hours_spent: float = Field(default=0.0, ge=0)
    mark_completed: bool = False


class CourseProgressOut(BaseModel):
    user_id: str
    course_id: str
    lessons_completed: int
    hours_spent: float
    completion_rate: float
    last_accessed: datetime.datetime | None
    completed_at: datetime.datetime | None
    created_at: datetime.datetime | None
    updated_at: datetime.datetime | None

    @classmethod
    def from_model(cls, p: CourseProgress) -> CourseProgressOut:
        return cls(
            user_id=p.user_id,
            course_id=p.course_id,
            lessons_completed=p.lessons_completed,
            hours_spent=p.hours_spent,
            completion_rate=p.completion_rate,
            last_accessed=p.last_accessed,
            completed_at=p.completed_at,
            created_at=p.created_at,
            updated_at=p.updated_at,
        )


class LessonStatOut(BaseModel):
    lesson_id: str
    lesson_title: str
    completed: int
    total: int


class EnrollmentDayOut(BaseModel):
    date: str
    enrollments: int


class LearnerProgressOut(BaseModel):
    user_id: str
    lessons_completed: int
    hours_spent: float
    completion_rate: float


class CourseAnalyticsOut(BaseModel):
    course_id: str
    course_title: str
    total_enrollments: int
    completed: int
    avg_completion_rate: float
    avg_hours_spent: float
    lesson_stats: list[LessonStatOut]
    learners: list[LearnerProgressOut]
    enrollments: list[EnrollmentDayOut]

    @classmethod
    def from_model(cls, a: CourseAnalytics) -> CourseAnalyticsOut:
        return cls(
            course_id=a.course_id,
            course_title=a.course_title,
            total_enrollments=a.total_enrollments,
            completed=a.completed,
            avg_completion_rate=a.avg_completion_rate,
            avg_hours_spent=a.avg_hours_spent,
            lesson_stats=[
                LessonStatOut(
                    lesson_id=s.lesson_id,
                    lesson_title=s.lesson_title,
                    completed=s.completed,
                    total=s.total,
                )
                for s in a.lesson_stats
            ],
            learners=[
                LearnerProgressOut(
                    user_id=p.user_id,
                    lessons_completed=p.lessons_completed,
                    hours_spent=p.hours_spent,
                    completion_rate=p.completion_rate,
                )
                for p in a.learners
            ],
            enrollments=[
                EnrollmentDayOut(date=e.date, enrollments=e.enrollments)
                for e in a.enrollments
            ],
        )


@router.post("/{course_id}/progress", response_model=CourseProgressOut)
async def update_course_progress(
    course_id: str,
    body: LessonProgressIn,
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
    cache: Annotated[CacheService, Depends(get_cache)],
) -> CourseProgressOut:
    try:
        progress = await progress_service.update_course_progress(
            store,
            principal.user_id,
            course_id,
            hours_spent=body.hours_spent,
            mark_completed=body.mark_completed,
            lesson_id=body.lesson_id,
            mode=SETTINGS.lesson_completion_mode,
        )
    except CourseNotFoundError:
        raise HTTPException(status_code=404, detail="course not found") from None
    except ProgressValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from None

    await store.after_commit(partial(invalidate_user, cache, principal.user_id))
    return CourseProgressOut.from_model(progress)


@router.get("/{course_id}/progress", response_model=CourseProgressOut)
async def get_course_progress(
    course_id: str,
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> CourseProgressOut:
    try:
        progress = await progress_service.get_course_progress(
            store, principal.user_id, course_id
        )
    except CourseNotFoundError:
        raise HTTPException(status_code=404, detail="course not found") from None
    if progress is None:
        raise HTTPException(status_code=404, detail="no progress recorded")
    return CourseProgressOut.from_model(progress)


@router.get("/{course_id}/analytics", response_model=CourseAnalyticsOut)
async def get_course_analytics(
    course_id: str,
    principal: Annotated[Principal, Depends(require_user)],
    store: Annotated[RecordStore, Depends(get_record_store)],
    authz: Annotated[Authorization, Depends(get_authorization)],
) -> CourseAnalyticsOut:
    """Enrollment and completion rollup for one course.

    Restricted to platform admins, the course author and the course's
    listed administrators.
    """
    try:
        result = await progress_service.get_course_analytics(
            store, authz, principal, course_id
        )
    except CourseNotFoundError:
        raise HTTPException(status_code=404, detail="course not found") from None
    except PermissionError:
        raise HTTPException(
            status_code=403, detail="Insufficient course permissions"
        ) from None
    return CourseAnalyticsOut.from_model(result)
