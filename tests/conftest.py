from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.api.dependencies import get_cache, get_record_store  # noqa: E402
from app.main import app  # noqa: E402
from app.models.assessment import Question, Test, TestAccessPolicy  # noqa: E402
from app.models.course import Course, Lesson  # noqa: E402
from app.repos.catalog_repo import InMemoryCatalogRepo  # noqa: E402
from app.repos.store import RecordStore, in_memory_store  # noqa: E402
from app.services import token_service  # noqa: E402
from app.services.cache import InMemoryCacheService  # noqa: E402

COURSE_ID = "course-1"
EMPTY_COURSE_ID = "empty-course"
TEST_ID = "test-1"
UNLIMITED_TEST_ID = "open-test"
AUTHOR_ID = "author-1"
COURSE_ADMIN_ID = "course-admin"
# correct option for question n (1-based) of TEST_ID
ANSWER_KEY = {f"{TEST_ID}-q{n}": n - 1 for n in range(1, 5)}


def seed_catalog(catalog: InMemoryCatalogRepo) -> None:
    """Four-lesson course with a two-attempt test, an unlimited test and a
    course with no lessons."""
    catalog.add_course(
        Course(
            id=COURSE_ID,
            title="Course One",
            author_id=AUTHOR_ID,
            admin_ids=frozenset({COURSE_ADMIN_ID}),
        ),
        [
            Lesson(
                id=f"{COURSE_ID}-l{n}",
                course_id=COURSE_ID,
                title=f"Lesson {n}",
                sequence_order=n,
            )
            for n in range(1, 5)
        ],
    )
    catalog.add_course(Course(id=EMPTY_COURSE_ID, title="Empty"), [])
    catalog.add_test(
        Test(id=TEST_ID, title="Test One", author_id=AUTHOR_ID, course_id=COURSE_ID),
        [
            Question(
                id=qid,
                test_id=TEST_ID,
                prompt=f"Question {n}",
                options=("a", "b", "c", "d"),
                correct_option=correct,
                sequence_order=n,
            )
            for n, (qid, correct) in enumerate(ANSWER_KEY.items(), start=1)
        ],
        TestAccessPolicy(test_id=TEST_ID, attempts_allowed=2),
    )
    catalog.add_test(
        Test(id=UNLIMITED_TEST_ID, title="Open Test"),
        [
            Question(
                id=f"{UNLIMITED_TEST_ID}-q1",
                test_id=UNLIMITED_TEST_ID,
                prompt="Only question",
                options=("yes", "no"),
                correct_option=0,
                sequence_order=1,
            )
        ],
        TestAccessPolicy(test_id=UNLIMITED_TEST_ID, attempts_allowed=0),
    )


@pytest.fixture
def store() -> RecordStore:
    s = in_memory_store()
    seed_catalog(s.catalog)  # type: ignore[arg-type]
    return s


@pytest.fixture
def cache() -> InMemoryCacheService:
    return InMemoryCacheService()


@pytest.fixture
def client(store: RecordStore, cache: InMemoryCacheService):
    """TestClient wired to a fresh Record Store and cache."""
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


def mint_token(
    username: str = "learner-1",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth_headers(username: str = "learner-1", roles: list[str] | None = None) -> dict:
    return {"Authorization": f"Bearer {mint_token(username, roles)}"}


@pytest.fixture
def headers() -> dict:
    """Headers for a plain learner."""
    return auth_headers()


@pytest.fixture
def admin_headers() -> dict:
    """Headers for a platform admin."""
    return auth_headers("platform-admin", ["admin"])
