"""HTTP surface tests: identity headers, error mapping and a full coach-to-user flow."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from fitplan.main import app

USER = {"X-User-Id": "user-1"}
COACH = {"X-Admin-Id": "coach-1"}


@pytest.fixture
def client():
    # No context manager: lifespan would reconfigure logging and the schema
    return TestClient(app)


@pytest.fixture
def daily_plan(client):
    """Level Template with one session every day, assigned to user-1 from yesterday."""
    session = client.post(
        "/api/admin/session-templates",
        json={
            "title": "Daily Mobility",
            "difficulty": "beginner",
            "duration_minutes": 20,
            "items": [{"exercise_id": "ex-pushup", "sets": 2, "target_reps": {"min": 10, "max": 15}}],
        },
    ).json()["session_template"]
    level = client.post("/api/admin/level-templates", json={"name": "Everyday"}).json()["level_template"]
    placement = [{"session_template_id": session["id"]}]
    days = {day: placement for day in ("mon", "tue", "wed", "thu", "fri", "sat", "sun")}
    response = client.put(
        f"/api/admin/level-templates/{level['id']}/weeks",
        json={"weeks": [{"week_number": n, "days": days} for n in range(1, 6)]},
    )
    assert response.status_code == 200

    now = datetime.now(UTC)
    response = client.post(
        "/api/admin/subscriptions/assign",
        headers=COACH,
        json={
            "user_id": "user-1",
            "level_template_id": level["id"],
            "start_at": (now - timedelta(days=1)).isoformat(),
            "end_at": (now + timedelta(days=30)).isoformat(),
        },
    )
    assert response.status_code == 201
    return {"session": session, "level": level, "subscription": response.json()["subscription"]}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_me_requires_user_header(client):
    assert client.get("/api/me/today").status_code == 401


def test_today_without_subscription_is_rest_day(client):
    body = client.get("/api/me/today", headers=USER).json()

    assert body["subscription"] is None
    assert body["plan"] is None
    assert body["today"]["is_rest_day"] is True
    assert body["today"]["session"] is None


def test_today_resolves_assigned_plan(client, daily_plan):
    body = client.get("/api/me/today", headers=USER).json()

    assert body["today"]["session"]["title"] == "Daily Mobility"
    assert body["today"]["week_number"] == 1
    assert body["subscription"]["status"] == "ACTIVE"
    assert body["plan"]["duration_weeks"] == 5


def test_today_accepts_date_query(client, daily_plan):
    body = client.get("/api/me/today", params={"date": "2024-01-07"}, headers=USER).json()

    assert body["today"]["date"] == "2024-01-07"
    assert body["today"]["day_name"] == "Sunday"


def test_subscription_endpoint(client, daily_plan):
    body = client.get("/api/me/subscription", headers=USER).json()

    assert body["subscription"]["level_name"] == "Everyday"
    assert body["subscription"]["days_remaining"] in (29, 30, 31)


def test_plan_week_validates_week_number(client, daily_plan):
    assert client.get("/api/me/plan/week", params={"weekNumber": 6}, headers=USER).status_code == 422

    body = client.get("/api/me/plan/week", params={"weekNumber": 1}, headers=USER).json()
    assert len(body["plan"]["days"]) == 7


def test_session_detail_not_found(client):
    assert client.get("/api/me/session/missing", headers=USER).status_code == 404


def test_invalid_weeks_return_invariant_code(client):
    level = client.post("/api/admin/level-templates", json={"name": "Sparse"}).json()["level_template"]

    response = client.put(
        f"/api/admin/level-templates/{level['id']}/weeks",
        json={"weeks": [{"week_number": n, "days": {}} for n in range(1, 6)]},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "SESSIONS_PER_WEEK"


def test_second_assign_is_rejected(client, daily_plan):
    now = datetime.now(UTC)
    response = client.post(
        "/api/admin/subscriptions/assign",
        json={
            "user_id": "user-1",
            "level_template_id": daily_plan["level"]["id"],
            "start_at": now.isoformat(),
            "end_at": (now + timedelta(days=10)).isoformat(),
        },
    )

    assert response.status_code == 400


def test_cancel_unknown_subscription_is_404(client):
    assert client.put("/api/admin/subscriptions/missing/cancel", json={}).status_code == 404


def test_cancel_and_list_subscriptions(client, daily_plan):
    sub_id = daily_plan["subscription"]["id"]

    response = client.put(f"/api/admin/subscriptions/{sub_id}/cancel", headers=COACH, json={"note": "moved away"})
    listed = client.get("/api/admin/subscriptions/user/user-1").json()["subscriptions"]

    assert response.json()["subscription"]["status"] == "CANCELED"
    assert listed[0]["status"] == "CANCELED"
    assert listed[0]["days_remaining"] == 0


def test_daily_pin_route_overrides_today(client, daily_plan):
    today = datetime.now(UTC).date().isoformat()

    response = client.put(f"/api/admin/clients/user-1/daily/{today}", json={})
    body = client.get("/api/me/today", headers=USER).json()

    assert response.status_code == 200
    assert body["today"]["is_rest_day"] is True


def test_client_plan_view(client, daily_plan):
    body = client.get("/api/admin/clients/user-1/plan").json()

    assert body["subscription"]["level_name"] == "Everyday"
    assert len(body["weeks"]) == 5
    assert body["override"] is None


def test_week_override_and_reset_routes(client, daily_plan):
    sid = daily_plan["session"]["id"]
    days = {"mon": [{"session_template_id": sid}] * 4}

    response = client.put("/api/admin/clients/user-1/plan/week/2", headers=COACH, json={"days": days})
    assert response.status_code == 200
    assert len(response.json()["override"]["overrides_by_week"][1]["days"]["mon"]) == 4

    response = client.post("/api/admin/clients/user-1/plan/reset-week/2", headers=COACH)
    assert response.json()["override"]["overrides_by_week"][1]["days"]["mon"] == []


def test_session_override_routes(client, daily_plan):
    sid = daily_plan["session"]["id"]
    items = [{"exercise_id": "ex-squat", "sets": 3, "target_reps": 10}]

    assert client.get(f"/api/admin/clients/user-1/session-override/{sid}").status_code == 404
    response = client.put(f"/api/admin/clients/user-1/session-override/{sid}", headers=COACH, json={"items": items})
    stored = client.get(f"/api/admin/clients/user-1/session-override/{sid}").json()

    assert response.status_code == 200
    assert stored["session_override"]["items"][0]["exercise_id"] == "ex-squat"


def test_workout_flow(client, daily_plan):
    sid = daily_plan["session"]["id"]

    started = client.post("/api/workouts/start", headers=USER, json={"session_template_id": sid})
    assert started.status_code == 201
    workout_id = started.json()["workout_session"]["id"]

    for set_number in (1, 2):
        response = client.post(
            "/api/workouts/exercise/set",
            headers=USER,
            json={
                "workout_session_id": workout_id,
                "exercise_id": "ex-pushup",
                "set_number": set_number,
                "weight": 10,
                "reps_completed": 15,
            },
        )
        assert response.status_code == 200

    completed = client.post(
        "/api/workouts/exercise/complete",
        headers=USER,
        json={"workout_session_id": workout_id, "exercise_id": "ex-pushup"},
    ).json()

    assert completed["history"]["progression_status"] == "eligible"
    history = client.get("/api/me/exercise/ex-pushup/history", headers=USER).json()["history"]
    assert history["last_reps"] == [15, 15]

    assert client.get("/api/workouts/active", headers=USER).json()["workout_session"]["id"] == workout_id
    finished = client.post("/api/workouts/complete", headers=USER, json={"workout_session_id": workout_id})
    assert finished.json()["workout_session"]["status"] == "completed"
    assert client.get("/api/workouts/active", headers=USER).status_code == 404


def test_workout_of_missing_template_is_404(client):
    response = client.post("/api/workouts/start", headers=USER, json={"session_template_id": "missing"})
    assert response.status_code == 404
