"""Tests for the in-memory progress repositories and the version check."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from app.models.progress import (
    CourseProgress,
    LoginEvent,
    TestAttemptProgress,
    UserActivity,
)
from app.repos.catalog_repo import InMemoryCatalogRepo
from app.repos.progress_repo import (
    InMemoryCourseProgressRepo,
    InMemoryLoginEventRepo,
    InMemoryTestProgressRepo,
    InMemoryUserActivityRepo,
)
from app.repos.store import SAMPLE_COURSE_ID, SAMPLE_TEST_ID, seed_sample_catalog
from app.services.errors import WriteConflictError

T0 = datetime(2026, 3, 1, tzinfo=UTC)


def test_insert_then_update_bumps_version() -> None:
    repo = InMemoryCourseProgressRepo()
    p = CourseProgress(user_id="u1", course_id="c1", lessons_completed=1)
    first = asyncio.run(repo.save(p, expected_version=None))
    assert first.version == 1

    second = asyncio.run(
        repo.save(
            CourseProgress(user_id="u1", course_id="c1", lessons_completed=2),
            expected_version=1,
        )
    )
    assert second.version == 2
    assert asyncio.run(repo.get("u1", "c1")) == second


def test_second_insert_conflicts() -> None:
    repo = InMemoryCourseProgressRepo()
    p = CourseProgress(user_id="u1", course_id="c1")
    asyncio.run(repo.save(p, expected_version=None))
    with pytest.raises(WriteConflictError) as exc_info:
        asyncio.run(repo.save(p, expected_version=None))
    assert exc_info.value.record == "course_progress"
    assert exc_info.value.key == ("u1", "c1")


def test_stale_version_conflicts_and_keeps_winner() -> None:
    repo = InMemoryTestProgressRepo()
    base = TestAttemptProgress(user_id="u1", test_id="t1")
    asyncio.run(repo.save(base, expected_version=None))
    winner = asyncio.run(
        repo.save(TestAttemptProgress(user_id="u1", test_id="t1", attempts_used=1), expected_version=1)
    )
    with pytest.raises(WriteConflictError):
        asyncio.run(
            repo.save(
                TestAttemptProgress(user_id="u1", test_id="t1", attempts_used=1),
                expected_version=1,
            )
        )
    assert asyncio.run(repo.get("u1", "t1")) == winner


def test_update_of_missing_record_conflicts() -> None:
    repo = InMemoryUserActivityRepo()
    with pytest.raises(WriteConflictError):
        asyncio.run(
            repo.save(UserActivity(user_id="u1", last_active=T0), expected_version=3)
        )


def test_list_by_user_and_course() -> None:
    repo = InMemoryCourseProgressRepo()
    for user, course in [("u1", "c1"), ("u1", "c2"), ("u2", "c1")]:
        asyncio.run(
            repo.save(CourseProgress(user_id=user, course_id=course), expected_version=None)
        )
    assert {p.course_id for p in asyncio.run(repo.list_by_user("u1"))} == {"c1", "c2"}
    assert {p.user_id for p in asyncio.run(repo.list_by_course("c1"))} == {"u1", "u2"}


def test_login_log_is_sorted_and_range_filtered() -> None:
    repo = InMemoryLoginEventRepo()
    times = [T0 + timedelta(days=d) for d in (3, 0, 1, 2)]
    for t in times:
        asyncio.run(repo.append(LoginEvent(user_id="u1", login_time=t)))
    asyncio.run(repo.append(LoginEvent(user_id="u2", login_time=T0)))

    all_u1 = asyncio.run(repo.list_by_user("u1"))
    assert [e.login_time for e in all_u1] == sorted(times)

    window = asyncio.run(
        repo.list_by_user("u1", since=T0 + timedelta(days=1), until=T0 + timedelta(days=3))
    )
    # until is exclusive
    assert [e.login_time for e in window] == [
        T0 + timedelta(days=1),
        T0 + timedelta(days=2),
    ]


def test_seed_sample_catalog_is_idempotent() -> None:
    catalog = InMemoryCatalogRepo()
    seed_sample_catalog(catalog)
    seed_sample_catalog(catalog)
    lessons = asyncio.run(catalog.list_lessons(SAMPLE_COURSE_ID))
    questions = asyncio.run(catalog.list_questions(SAMPLE_TEST_ID))
    policy = asyncio.run(catalog.get_access_policy(SAMPLE_TEST_ID))
    assert len(lessons) == 4
    assert [l.sequence_order for l in lessons] == [1, 2, 3, 4]
    assert len(questions) == 3
    assert policy is not None
    assert policy.attempts_allowed == 3


def test_catalog_rejects_duplicate_course() -> None:
    catalog = InMemoryCatalogRepo()
    seed_sample_catalog(catalog)
    course = asyncio.run(catalog.get_course(SAMPLE_COURSE_ID))
    assert course is not None
    with pytest.raises(ValueError):
        catalog.add_course(course)
