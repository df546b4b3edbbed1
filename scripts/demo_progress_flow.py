"""Demo: a learner logs in, works through the sample course and takes the quiz.

Uses FastAPI TestClient against the in-memory Record Store, so no
database or Redis is needed.

Run with:
    python scripts/demo_progress_flow.py
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from app.api.dependencies import memory_store
from app.main import app
from app.repos.store import SAMPLE_COURSE_ID, SAMPLE_TEST_ID, seed_sample_catalog
from app.services import token_service

LEARNER = "demo-learner"


def main() -> None:
    client = TestClient(app)

    # ── Seed data ───────────────────────────────────────────────────
    seed_sample_catalog(memory_store.catalog)  # type: ignore[arg-type]
    learner = {
        "Authorization": f"Bearer {token_service.create_access_token(sub=LEARNER)}"
    }
    admin = {
        "Authorization": "Bearer "
        + token_service.create_access_token(sub="demo-admin", roles=["admin"])
    }

    # ── Step 1: login ───────────────────────────────────────────────
    r = client.post("/v1/activity/login", headers=learner)
    print(f"1. POST /v1/activity/login          → {r.status_code}  streak={r.json()['streak_days']}")

    # ── Step 2: lesson progress ─────────────────────────────────────
    course_url = f"/v1/courses/{SAMPLE_COURSE_ID}/progress"
    for n in (1, 2):
        r = client.post(
            course_url,
            json={
                "lesson_id": f"{SAMPLE_COURSE_ID}-{n}",
                "hours_spent": 1.5,
                "mark_completed": True,
            },
            headers=learner,
        )
        data = r.json()
        print(
            f"2. POST {course_url} → {r.status_code}  "
            f"completed={data['lessons_completed']} rate={data['completion_rate']}"
        )

    # ── Step 3: bad payload ─────────────────────────────────────────
    r = client.post(course_url, json={"hours_spent": -1}, headers=learner)
    print(f"3. POST {course_url} (bad) → {r.status_code}  (rejected)")

    # ── Step 4: quiz attempt ────────────────────────────────────────
    attempts_url = f"/v1/tests/{SAMPLE_TEST_ID}/attempts"
    answers = [
        {"question_id": f"{SAMPLE_TEST_ID}-q1", "choice": 1},
        {"question_id": f"{SAMPLE_TEST_ID}-q2", "choice": 0},
        {"question_id": f"{SAMPLE_TEST_ID}-q3", "choice": 0},
    ]
    r = client.post(attempts_url, json={"answers": answers}, headers=learner)
    data = r.json()
    print(
        f"4. POST {attempts_url} → {r.status_code}  "
        f"score={data['score']} attempts_left={data['attempts_left']}"
    )

    # ── Step 5: learner overview (cached) ───────────────────────────
    for _ in range(2):
        r = client.get("/v1/progress/overview", headers=learner)
        print(f"5. GET  /v1/progress/overview       → {r.status_code}  {r.json()}")

    # ── Step 6: analytics ───────────────────────────────────────────
    r = client.get(f"/v1/courses/{SAMPLE_COURSE_ID}/analytics", headers=learner)
    print(f"6. GET  course analytics (learner)  → {r.status_code}  (forbidden)")
    r = client.get(f"/v1/courses/{SAMPLE_COURSE_ID}/analytics", headers=admin)
    print(f"6. GET  course analytics (admin)    → {r.status_code}  {r.json()}")

    print("\nDone.")


if __name__ == "__main__":
    main()
