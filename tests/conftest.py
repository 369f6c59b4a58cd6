"""Root conftest for all tests.

Every test runs against its own temporary SQLite file so tests never share
rows. Seed fixtures build a small catalog: three exercises, three session
templates and a Level Template with four sessions per week.
"""

from datetime import UTC, datetime

import pytest

from fitplan.db import models
from fitplan.db.session import configure_database, get_session, init_db
from fitplan.plans import authoring
from fitplan.plans.types import Placement, RepRange, SessionItem, WeekDays, WeekTemplate
from fitplan.subscriptions import ledger

PLAN_START = datetime(2024, 1, 1, tzinfo=UTC)  # a Monday
PLAN_END = datetime(2024, 3, 31, tzinfo=UTC)


@pytest.fixture(autouse=True)
def database(tmp_path):
    """Point the engine at a fresh SQLite file and create the schema."""
    configure_database(f"sqlite:///{tmp_path / 'fitplan_test.db'}")
    init_db()
    yield
    configure_database(None)


@pytest.fixture
def exercises():
    """Catalog rows: bench press, squat and push-up."""
    rows = [
        models.Exercise(id="ex-bench", name="Bench Press", muscle_group="chest", equipment="barbell"),
        models.Exercise(id="ex-squat", name="Back Squat", muscle_group="legs", equipment="barbell"),
        models.Exercise(id="ex-pushup", name="Push-up", muscle_group="chest", equipment="bodyweight"),
    ]
    with get_session() as db:
        db.add_all(rows)
    return {row.id: row.name for row in rows}


@pytest.fixture
def session_templates(exercises):
    """Three session templates keyed by short name."""
    upper = authoring.create_session_template(
        "Upper A",
        [
            SessionItem(
                exercise_id="ex-bench",
                alternatives=["ex-pushup"],
                sets=4,
                target_reps=RepRange(min=8, max=12),
            ),
        ],
        difficulty="beginner",
        duration_minutes=45,
    )
    lower = authoring.create_session_template(
        "Lower A",
        [SessionItem(exercise_id="ex-squat", sets=3, target_reps=10)],
        difficulty="beginner",
        duration_minutes=50,
    )
    full = authoring.create_session_template(
        "Full Body",
        [
            SessionItem(exercise_id="ex-squat", sets=3, target_reps=8),
            SessionItem(exercise_id="ex-bench", sets=3, target_reps=8),
        ],
        difficulty="intermediate",
        duration_minutes=60,
    )
    return {"upper": upper, "lower": lower, "full": full}


@pytest.fixture
def make_week():
    """Build WeekDays from keyword day lists of session template ids."""

    def _make(**days: list[str]) -> WeekDays:
        return WeekDays(**{day: [Placement(session_template_id=sid) for sid in ids] for day, ids in days.items()})

    return _make


@pytest.fixture
def level_template(session_templates, make_week):
    """Beginner plan: Upper Mon, Lower Wed, Full Fri, Upper Sat, every week."""
    template = authoring.create_level_template("Beginner")
    upper, lower, full = (session_templates[k].id for k in ("upper", "lower", "full"))
    days = make_week(mon=[upper], wed=[lower], fri=[full], sat=[upper])
    weeks = [WeekTemplate(week_number=n, days=days) for n in range(1, 6)]
    return authoring.update_level_template_weeks(template.id, weeks)


@pytest.fixture
def subscribed_user(level_template):
    """User with an ACTIVE subscription from 2024-01-01 to 2024-03-31."""
    user_id = "user-1"
    ledger.assign(user_id, level_template.id, PLAN_START, PLAN_END, now=PLAN_START)
    return user_id
