"""Progress record repositories.

Every mutable record carries a version.  save() with expected_version=None
inserts and fails if the key already exists; with an int it updates only
when the stored version still matches, then bumps it.  Either failure is a
WriteConflictError, which gives one writer per key between a read and the
following save.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Protocol

from app.models.progress import (
    CourseProgress,
    LoginEvent,
    TestAttemptProgress,
    UserActivity,
)
from app.services.errors import WriteConflictError


class CourseProgressRepo(Protocol):
    async def get(self, user_id: str, course_id: str) -> CourseProgress | None: ...
    async def save(
        self, progress: CourseProgress, *, expected_version: int | None
    ) -> CourseProgress: ...
    async def list_by_user(self, user_id: str) -> list[CourseProgress]: ...
    async def list_by_course(self, course_id: str) -> list[CourseProgress]: ...


class TestProgressRepo(Protocol):
    async def get(self, user_id: str, test_id: str) -> TestAttemptProgress | None: ...
    async def save(
        self, progress: TestAttemptProgress, *, expected_version: int | None
    ) -> TestAttemptProgress: ...
    async def list_by_user(self, user_id: str) -> list[TestAttemptProgress]: ...
    async def list_by_test(self, test_id: str) -> list[TestAttemptProgress]: ...


class UserActivityRepo(Protocol):
    async def get(self, user_id: str) -> UserActivity | None: ...
    async def save(
        self, activity: UserActivity, *, expected_version: int | None
    ) -> UserActivity: ...


class LoginEventRepo(Protocol):
    async def append(self, event: LoginEvent) -> None: ...
    async def list_by_user(
        self,
        user_id: str,
        *,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[LoginEvent]: ...


def _check_version(
    record: str,
    key: tuple[str, ...],
    existing_version: int | None,
    expected_version: int | None,
) -> int:
    """Return the version to store, or raise if the write lost a race."""
    if expected_version is None:
        if existing_version is not None:
            raise WriteConflictError(record, key)
        return 1
    if existing_version != expected_version:
        raise WriteConflictError(record, key)
    return expected_version + 1


class InMemoryCourseProgressRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[str, str], CourseProgress] = {}

    async def get(self, user_id: str, course_id: str) -> CourseProgress | None:
        return self._store.get((user_id, course_id))

    async def save(
        self, progress: CourseProgress, *, expected_version: int | None
    ) -> CourseProgress:
        key = (progress.user_id, progress.course_id)
        existing = self._store.get(key)
        version = _check_version(
            "course_progress",
            key,
            existing.version if existing is not None else None,
            expected_version,
        )
        stored = replace(progress, version=version)
        self._store[key] = stored
        return stored

    async def list_by_user(self, user_id: str) -> list[CourseProgress]:
        return [p for p in self._store.values() if p.user_id == user_id]

    async def list_by_course(self, course_id: str) -> list[CourseProgress]:
        return [p for p in self._store.values() if p.course_id == course_id]


class InMemoryTestProgressRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[str, str], TestAttemptProgress] = {}

    async def get(self, user_id: str, test_id: str) -> TestAttemptProgress | None:
        return self._store.get((user_id, test_id))

    async def save(
        self, progress: TestAttemptProgress, *, expected_version: int | None
    ) -> TestAttemptProgress:
        key = (progress.user_id, progress.test_id)
        existing = self._store.get(key)
        version = _check_version(
            "test_progress",
            key,
            existing.version if existing is not None else None,
            expected_version,
        )
        stored = replace(progress, version=version)
        self._store[key] = stored
        return stored

    async def list_by_user(self, user_id: str) -> list[TestAttemptProgress]:
        return [p for p in self._store.values() if p.user_id == user_id]

    async def list_by_test(self, test_id: str) -> list[TestAttemptProgress]:
        return [p for p in self._store.values() if p.test_id == test_id]


class InMemoryUserActivityRepo:
    def __init__(self) -> None:
        self._store: dict[str, UserActivity] = {}

    async def get(self, user_id: str) -> UserActivity | None:
        return self._store.get(user_id)

    async def save(
        self, activity: UserActivity, *, expected_version: int | None
    ) -> UserActivity:
        existing = self._store.get(activity.user_id)
        version = _check_version(
            "user_activity",
            (activity.user_id,),
            existing.version if existing is not None else None,
            expected_version,
        )
        stored = replace(activity, version=version)
        self._store[activity.user_id] = stored
        return stored


class InMemoryLoginEventRepo:
    def __init__(self) -> None:
        self._events: list[LoginEvent] = []

    async def append(self, event: LoginEvent) -> None:
        self._events.append(event)

    async def list_by_user(
        self,
        user_id: str,
        *,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[LoginEvent]:
        return sorted(
            (
                e
                for e in self._events
                if e.user_id == user_id
                and (since is None or e.login_time >= since)
                and (until is None or e.login_time < until)
            ),
            key=lambda e: e.login_time,
        )
