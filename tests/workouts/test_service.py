"""Tests for the workout session flow."""

from datetime import UTC, datetime, timedelta

import pytest

from fitplan.plans import authoring
from fitplan.plans.errors import EntityNotFoundError
from fitplan.plans.types import ProgressionRule, RepRange, SessionItem
from fitplan.progression.evaluator import get_history
from fitplan.workouts import service

NOW = datetime(2024, 1, 10, 18, tzinfo=UTC)


def _record_all(user_id, workout_id, exercise_id, weight, reps):
    workout = None
    for set_number, r in enumerate(reps, start=1):
        workout = service.record_set(user_id, workout_id, exercise_id, set_number, weight, r, now=NOW)
    return workout


def test_start_workout_prescribes_pending_sets(session_templates):
    workout = service.start_workout("u1", session_templates["full"].id, now=NOW)

    assert workout.workout_type == "Full Body"
    assert workout.status == "active"
    assert [e.exercise_id for e in workout.exercises] == ["ex-squat", "ex-bench"]
    assert all(e.status == "pending" for e in workout.exercises)
    assert [s.set_number for s in workout.exercises[0].sets] == [1, 2, 3]


def test_start_workout_unknown_template():
    with pytest.raises(EntityNotFoundError):
        service.start_workout("u1", "missing")


def test_record_set_marks_exercise_in_progress(session_templates):
    workout = service.start_workout("u1", session_templates["upper"].id, now=NOW)

    workout = service.record_set("u1", workout.id, "ex-bench", 1, 40, 12, notes="easy", now=NOW)

    exercise = workout.exercise("ex-bench")
    assert exercise.status == "in_progress"
    assert exercise.sets[0].completed is True
    assert exercise.sets[0].notes == "easy"
    assert exercise.sets[1].completed is False


def test_record_set_beyond_prescription_appends(session_templates):
    workout = service.start_workout("u1", session_templates["lower"].id, now=NOW)

    workout = service.record_set("u1", workout.id, "ex-squat", 4, 80, 8, now=NOW)

    assert [s.set_number for s in workout.exercise("ex-squat").sets] == [1, 2, 3, 4]


def test_record_set_on_another_users_workout(session_templates):
    workout = service.start_workout("u1", session_templates["upper"].id, now=NOW)

    with pytest.raises(EntityNotFoundError):
        service.record_set("intruder", workout.id, "ex-bench", 1, 40, 12)


def test_record_set_unknown_exercise(session_templates):
    workout = service.start_workout("u1", session_templates["upper"].id, now=NOW)

    with pytest.raises(EntityNotFoundError):
        service.record_set("u1", workout.id, "ex-deadlift", 1, 100, 5)


def test_skip_exercise(session_templates):
    workout = service.start_workout("u1", session_templates["full"].id, now=NOW)

    workout = service.skip_exercise("u1", workout.id, "ex-bench")

    assert workout.exercise("ex-bench").status == "skipped"
    assert workout.exercise("ex-squat").status == "pending"


def test_finish_workout_sets_status_and_completed_at(session_templates):
    workout = service.start_workout("u1", session_templates["upper"].id, now=NOW)
    service.record_set("u1", workout.id, "ex-bench", 1, 40, 12, now=NOW)

    finished = service.finish_workout("u1", workout.id, now=NOW + timedelta(minutes=45))

    assert finished.status == "completed"
    assert finished.completed_at == NOW + timedelta(minutes=45)
    assert finished.exercise("ex-bench").status == "in_progress"


def test_finishing_twice_keeps_first_completion_time(session_templates):
    workout = service.start_workout("u1", session_templates["upper"].id, now=NOW)
    service.finish_workout("u1", workout.id, now=NOW)

    again = service.finish_workout("u1", workout.id, now=NOW + timedelta(hours=1))

    assert again.completed_at == NOW


def test_finish_workout_of_another_user(session_templates):
    workout = service.start_workout("u1", session_templates["upper"].id, now=NOW)

    with pytest.raises(EntityNotFoundError):
        service.finish_workout("intruder", workout.id)


def test_active_workout_is_latest_started(session_templates):
    service.start_workout("u1", session_templates["upper"].id, now=NOW)
    latest = service.start_workout("u1", session_templates["lower"].id, now=NOW + timedelta(hours=1))
    service.start_workout("u2", session_templates["full"].id, now=NOW + timedelta(hours=2))

    active = service.get_active_workout("u1")

    assert active.id == latest.id
    assert active.started_at == NOW + timedelta(hours=1)


def test_finished_workout_is_no_longer_active(session_templates):
    workout = service.start_workout("u1", session_templates["upper"].id, now=NOW)

    service.finish_workout("u1", workout.id, now=NOW)

    assert service.get_active_workout("u1") is None


def test_prescribed_target_reps_falls_back_to_default(session_templates):
    assert service.prescribed_target_reps(session_templates["upper"].id, "ex-bench") == RepRange(min=8, max=12)
    assert service.prescribed_target_reps(session_templates["upper"].id, "ex-squat") == 12
    assert service.prescribed_target_reps("missing", "ex-bench") == 12


@pytest.mark.asyncio
async def test_complete_exercise_evaluates_progression(session_templates):
    workout = service.start_workout("u1", session_templates["upper"].id, now=NOW)
    _record_all("u1", workout.id, "ex-bench", 40, [12, 12, 12, 12])

    workout, result = await service.complete_exercise("u1", workout.id, "ex-bench", now=NOW)

    assert workout.exercise("ex-bench").status == "completed"
    assert result.progression_status == "eligible"
    assert result.recommended_next_weight is None
    assert get_history("u1", "ex-bench").total_volume == 1920


@pytest.mark.asyncio
async def test_complete_exercise_without_sets_skips_evaluation(session_templates):
    workout = service.start_workout("u1", session_templates["upper"].id, now=NOW)

    workout, result = await service.complete_exercise("u1", workout.id, "ex-bench", now=NOW)

    assert workout.exercise("ex-bench").status == "completed"
    assert result is None


@pytest.mark.asyncio
async def test_declared_progression_rule_is_not_applied(exercises):
    """Test that a rule's weight_change never changes the +2 kg recommendation."""
    template = authoring.create_session_template(
        "Bench Focus",
        [
            SessionItem(
                exercise_id="ex-bench",
                sets=2,
                target_reps=10,
                progression_rules=[
                    ProgressionRule(condition="reps_above", value=10, action="increase_weight", weight_change=5),
                ],
            )
        ],
    )

    for _ in range(2):
        workout = service.start_workout("u1", template.id, now=NOW)
        _record_all("u1", workout.id, "ex-bench", 60, [10, 10])
        _, result = await service.complete_exercise("u1", workout.id, "ex-bench", now=NOW)

    assert result.recommended_next_weight == 62
