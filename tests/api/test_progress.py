"""Per-user progress views: monthly rollup, overview, record lists and date ranges."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

from fastapi.testclient import TestClient

from tests.conftest import ANSWER_KEY, COURSE_ID, TEST_ID


def test_monthly_defaults_to_four_months(client: TestClient, headers: dict) -> None:
    client.post("/v1/activity/login", headers=headers)
    resp = client.get("/v1/progress/monthly", headers=headers)
    assert resp.status_code == 200
    months = resp.json()["progress"]
    assert len(months) == 4

    now = datetime.now(UTC)
    current = months[0]
    assert (current["year"], current["month"]) == (now.year, now.month)
    assert current["streak_days"] == 1
    assert current["login_frequency_by_day"] == {now.date().isoformat(): 1}
    assert all(m["streak_days"] == 0 for m in months[1:])


def test_monthly_months_back(client: TestClient, headers: dict) -> None:
    resp = client.get("/v1/progress/monthly?months_back=2", headers=headers)
    assert len(resp.json()["progress"]) == 2


def test_monthly_rejects_zero_months(client: TestClient, headers: dict) -> None:
    resp = client.get("/v1/progress/monthly?months_back=0", headers=headers)
    assert resp.status_code == 422


def test_monthly_counts_completed_course(client: TestClient, headers: dict) -> None:
    for _ in range(4):
        client.post(
            f"/v1/courses/{COURSE_ID}/progress",
            json={"hours_spent": 1, "mark_completed": True},
            headers=headers,
        )
    months = client.get("/v1/progress/monthly", headers=headers).json()["progress"]
    assert months[0]["courses_completed"] == 1


def test_overview_for_new_user(client: TestClient, headers: dict) -> None:
    resp = client.get("/v1/progress/overview", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {
        "total_streak_days": 0,
        "total_courses_completed": 0,
        "total_tests_completed": 0,
    }


def test_overview_totals(client: TestClient, headers: dict) -> None:
    client.post("/v1/activity/login", headers=headers)
    client.post(
        f"/v1/tests/{TEST_ID}/attempts",
        json={"answers": [{"question_id": q, "choice": c} for q, c in ANSWER_KEY.items()]},
        headers=headers,
    )
    data = client.get("/v1/progress/overview", headers=headers).json()
    assert data["total_streak_days"] == 1
    assert data["total_tests_completed"] == 1


def test_course_list(client: TestClient, headers: dict) -> None:
    client.post(
        f"/v1/courses/{COURSE_ID}/progress",
        json={"hours_spent": 1, "mark_completed": True},
        headers=headers,
    )
    resp = client.get("/v1/progress/courses", headers=headers)
    assert resp.status_code == 200
    assert [p["course_id"] for p in resp.json()] == [COURSE_ID]


def test_test_list_includes_listing_rate(client: TestClient, headers: dict) -> None:
    qid = next(iter(ANSWER_KEY))
    client.post(
        f"/v1/tests/{TEST_ID}/attempts",
        json={"answers": [{"question_id": qid, "choice": ANSWER_KEY[qid]}]},
        headers=headers,
    )
    [record] = client.get("/v1/progress/tests", headers=headers).json()
    assert record["test_id"] == TEST_ID
    # one of one submitted answers correct, one of four questions overall
    assert record["listing_rate"] == 100.0
    assert record["score"] == 25.0


def test_lists_empty_for_new_user(client: TestClient, headers: dict) -> None:
    assert client.get("/v1/progress/courses", headers=headers).json() == []
    assert client.get("/v1/progress/tests", headers=headers).json() == []


# --- date-range view ---


def _today() -> date:
    return datetime.now(UTC).date()


def test_period_defaults_to_last_month(client: TestClient, headers: dict) -> None:
    client.post("/v1/activity/login", headers=headers)
    client.post(
        f"/v1/courses/{COURSE_ID}/progress",
        json={"hours_spent": 1, "mark_completed": True},
        headers=headers,
    )
    resp = client.get("/v1/progress/period", headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert [p["course_id"] for p in data["course_progress"]] == [COURSE_ID]
    assert data["test_progress"] == []
    assert [e["streak_days"] for e in data["login_history"]] == [1]


def test_period_end_date_is_inclusive(client: TestClient, headers: dict) -> None:
    client.post("/v1/activity/login", headers=headers)
    today = _today().isoformat()

    data = client.get(
        f"/v1/progress/period?start_date={today}&end_date={today}", headers=headers
    ).json()
    assert len(data["login_history"]) == 1
    assert data["end"].startswith((_today() + timedelta(days=1)).isoformat())


def test_period_before_activity_is_empty(client: TestClient, headers: dict) -> None:
    client.post("/v1/activity/login", headers=headers)
    yesterday = (_today() - timedelta(days=1)).isoformat()
    data = client.get(
        f"/v1/progress/period?start_date={yesterday}&end_date={yesterday}",
        headers=headers,
    ).json()
    assert data["login_history"] == []
    assert data["course_progress"] == []


def test_period_rejects_malformed_date(client: TestClient, headers: dict) -> None:
    resp = client.get("/v1/progress/period?start_date=03/01/2026", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid start_date format. Use YYYY-MM-DD"


def test_period_rejects_start_after_end(client: TestClient, headers: dict) -> None:
    resp = client.get(
        "/v1/progress/period?start_date=2026-03-10&end_date=2026-03-01",
        headers=headers,
    )
    assert resp.status_code == 400
