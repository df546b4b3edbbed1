"""Course progress endpoint tests."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi.testclient import TestClient

from tests.conftest import (
    AUTHOR_ID,
    COURSE_ADMIN_ID,
    COURSE_ID,
    EMPTY_COURSE_ID,
    auth_headers,
)


def _post(client: TestClient, headers: dict, course_id: str = COURSE_ID, **body):
    return client.post(f"/v1/courses/{course_id}/progress", json=body, headers=headers)


def test_first_completion_on_four_lesson_course(client: TestClient, headers: dict) -> None:
    resp = _post(client, headers, hours_spent=2.5, mark_completed=True)
    assert resp.status_code == 200
    data = resp.json()
    assert data["user_id"] == "learner-1"
    assert data["course_id"] == COURSE_ID
    assert data["lessons_completed"] == 1
    assert data["hours_spent"] == 2.5
    assert data["completion_rate"] == 25.0
    assert data["last_accessed"] is not None
    assert data["completed_at"] is None


def test_get_progress_round_trips(client: TestClient, headers: dict) -> None:
    _post(client, headers, hours_spent=1, mark_completed=True)
    resp = client.get(f"/v1/courses/{COURSE_ID}/progress", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["lessons_completed"] == 1


def test_get_progress_404_when_nothing_recorded(client: TestClient, headers: dict) -> None:
    resp = client.get(f"/v1/courses/{COURSE_ID}/progress", headers=headers)
    assert resp.status_code == 404


def test_progress_is_per_user(client: TestClient, headers: dict) -> None:
    _post(client, headers, hours_spent=1, mark_completed=True)
    other = auth_headers("learner-2")
    resp = client.get(f"/v1/courses/{COURSE_ID}/progress", headers=other)
    assert resp.status_code == 404


def test_completing_every_lesson_sets_completed_at(client: TestClient, headers: dict) -> None:
    for n in range(1, 5):
        resp = _post(
            client, headers, lesson_id=f"{COURSE_ID}-l{n}", hours_spent=1, mark_completed=True
        )
    data = resp.json()
    assert data["completion_rate"] == 100.0
    assert data["completed_at"] is not None


def test_repeated_lesson_counts_twice_by_default(client: TestClient, headers: dict) -> None:
    for _ in range(2):
        resp = _post(
            client, headers, lesson_id=f"{COURSE_ID}-l1", hours_spent=0, mark_completed=True
        )
    assert resp.json()["lessons_completed"] == 2


def test_unknown_course_404(client: TestClient, headers: dict) -> None:
    resp = _post(client, headers, course_id="missing", hours_spent=1, mark_completed=True)
    assert resp.status_code == 404


def test_lesson_from_other_course_422(client: TestClient, headers: dict) -> None:
    resp = _post(client, headers, lesson_id="elsewhere-l1", hours_spent=1, mark_completed=True)
    assert resp.status_code == 422


def test_negative_hours_422(client: TestClient, headers: dict) -> None:
    resp = _post(client, headers, hours_spent=-1, mark_completed=False)
    assert resp.status_code == 422


def test_empty_course_rate_is_zero(client: TestClient, headers: dict) -> None:
    resp = _post(client, headers, course_id=EMPTY_COURSE_ID, hours_spent=1, mark_completed=True)
    assert resp.status_code == 200
    assert resp.json()["completion_rate"] == 0.0


def test_requires_token(client: TestClient) -> None:
    resp = client.post(f"/v1/courses/{COURSE_ID}/progress", json={"hours_spent": 1})
    assert resp.status_code == 401


# --- analytics ---


def test_analytics_for_course_author(client: TestClient, headers: dict) -> None:
    _post(client, headers, hours_spent=2, mark_completed=True)
    _post(client, auth_headers("learner-2"), hours_spent=4, mark_completed=True)

    resp = client.get(f"/v1/courses/{COURSE_ID}/analytics", headers=auth_headers(AUTHOR_ID))
    assert resp.status_code == 200
    data = resp.json()
    assert data["course_title"] == "Course One"
    assert data["total_enrollments"] == 2
    assert data["avg_hours_spent"] == 3.0
    assert data["avg_completion_rate"] == 25.0
    assert data["lesson_stats"][0] == {
        "lesson_id": f"{COURSE_ID}-l1",
        "lesson_title": "Lesson 1",
        "completed": 2,
        "total": 2,
    }
    assert [l["user_id"] for l in data["learners"]] == ["learner-1", "learner-2"]
    assert data["enrollments"] == [
        {"date": datetime.now(UTC).date().isoformat(), "enrollments": 2}
    ]


def test_analytics_for_listed_course_admin(client: TestClient) -> None:
    resp = client.get(
        f"/v1/courses/{COURSE_ID}/analytics", headers=auth_headers(COURSE_ADMIN_ID)
    )
    assert resp.status_code == 200


def test_analytics_for_platform_admin(client: TestClient, admin_headers: dict) -> None:
    resp = client.get(f"/v1/courses/{COURSE_ID}/analytics", headers=admin_headers)
    assert resp.status_code == 200


def test_analytics_forbidden_for_learner(client: TestClient, headers: dict) -> None:
    resp = client.get(f"/v1/courses/{COURSE_ID}/analytics", headers=headers)
    assert resp.status_code == 403


def test_analytics_unknown_course_404(client: TestClient, admin_headers: dict) -> None:
    resp = client.get("/v1/courses/missing/analytics", headers=admin_headers)
    assert resp.status_code == 404
