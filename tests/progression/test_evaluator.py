"""Tests for the progression evaluator.

Tests enforce that:
- Only completed sets with non-zero weight and reps count
- The first evaluation records a status but no recommendation
- A full pass recommends last weight + 2 kg; anything else holds
- Re-evaluating the same sets never double counts volume
"""

from datetime import UTC, datetime

import pytest
from loguru import logger

from fitplan.plans.types import RepRange
from fitplan.progression import evaluator
from fitplan.progression.evaluator import (
    SessionOutcome,
    apply_outcome,
    counted_sets,
    evaluate_progression,
    get_history,
    score_sets,
)
from fitplan.progression.types import ExerciseHistoryRecord, SetRecord

NOW = datetime(2024, 1, 10, 18, tzinfo=UTC)
TARGET = RepRange(min=8, max=12)


def _sets(weight, reps):
    return [
        SetRecord(set_number=n, weight=weight, reps_completed=r, completed=True)
        for n, r in enumerate(reps, start=1)
    ]


def test_counted_sets_skip_incomplete_missing_and_zero_values():
    sets = [
        SetRecord(set_number=1, weight=40, reps_completed=12, completed=True),
        SetRecord(set_number=2, weight=40, reps_completed=12, completed=False),
        SetRecord(set_number=3, weight=None, reps_completed=12, completed=True),
        SetRecord(set_number=4, weight=0, reps_completed=15, completed=True),
        SetRecord(set_number=5, weight=40, reps_completed=0, completed=True),
        SetRecord(set_number=6, weight=42.5, reps_completed=10, completed=True),
    ]

    assert [s.set_number for s in counted_sets(sets)] == [1, 6]


def test_zero_rep_set_does_not_fail_a_pass():
    outcome = score_sets(_sets(40, [12, 0]), 12, NOW)

    assert outcome.all_passed is True
    assert outcome.reps == [12]


def test_score_full_pass_against_range_max():
    outcome = score_sets(_sets(40, [12, 12, 12, 12]), TARGET, NOW)

    assert outcome.all_passed is True
    assert outcome.last_weight == 40
    assert outcome.reps == [12, 12, 12, 12]
    assert outcome.total_volume == 1920


def test_score_uses_last_completed_set_weight():
    sets = [
        SetRecord(set_number=1, weight=50, reps_completed=10, completed=True),
        SetRecord(set_number=2, weight=45, reps_completed=10, completed=True),
    ]

    outcome = score_sets(sets, 10, NOW)

    assert outcome.last_weight == 45
    assert outcome.all_passed is True


def test_score_partial_pass_fails():
    outcome = score_sets(_sets(40, [12, 11, 10, 9]), TARGET, NOW)

    assert outcome.all_passed is False


def test_score_without_counted_sets():
    assert score_sets([SetRecord(set_number=1)], TARGET, NOW) is None


def test_apply_outcome_honors_weight_step():
    prior = ExerciseHistoryRecord(user_id="u1", exercise_id="ex", last_weight=40)
    outcome = SessionOutcome(all_passed=True, last_weight=40, reps=[12], total_volume=480, set_logs=[])

    record = apply_outcome(prior, "u1", "ex", outcome, NOW, weight_step=2.5)

    assert record.recommended_next_weight == 42.5


@pytest.mark.asyncio
async def test_first_evaluation_has_no_recommendation():
    result = await evaluate_progression("u1", "ex-bench", _sets(40, [12, 12, 12, 12]), TARGET, now=NOW)

    assert result.progression_status == "eligible"
    assert result.recommended_next_weight is None
    assert result.total_volume == 1920


@pytest.mark.asyncio
async def test_second_full_pass_recommends_two_kg_more():
    await evaluate_progression("u1", "ex-bench", _sets(40, [12, 12, 12, 12]), TARGET, now=NOW)

    result = await evaluate_progression("u1", "ex-bench", _sets(40, [12, 12, 12, 12]), TARGET, now=NOW)

    assert result.progression_status == "eligible"
    assert result.recommended_next_weight == 42


@pytest.mark.asyncio
async def test_failed_session_holds_weight():
    await evaluate_progression("u1", "ex-bench", _sets(40, [12, 12, 12, 12]), TARGET, now=NOW)

    result = await evaluate_progression("u1", "ex-bench", _sets(42, [12, 11, 10, 9]), TARGET, now=NOW)

    assert result.progression_status == "failed"
    assert result.last_weight == 42
    assert result.recommended_next_weight == 42
    assert result.last_reps == [12, 11, 10, 9]


@pytest.mark.asyncio
async def test_reevaluation_does_not_double_count_volume():
    sets = _sets(40, [12, 12, 12, 12])
    await evaluate_progression("u1", "ex-bench", sets, TARGET, now=NOW)
    await evaluate_progression("u1", "ex-bench", sets, TARGET, now=NOW)

    history = get_history("u1", "ex-bench")

    assert history.total_volume == 1920
    assert len(history.last_sets) == 4
    assert history.last_completed_at == NOW


@pytest.mark.asyncio
async def test_no_counted_sets_writes_nothing():
    result = await evaluate_progression("u1", "ex-bench", [SetRecord(set_number=1, weight=40)], TARGET, now=NOW)

    assert result is None
    assert get_history("u1", "ex-bench") is None


@pytest.mark.asyncio
async def test_history_is_per_user_and_exercise():
    await evaluate_progression("u1", "ex-bench", _sets(40, [12]), 12, now=NOW)
    await evaluate_progression("u2", "ex-bench", _sets(60, [5]), 12, now=NOW)

    assert get_history("u1", "ex-bench").last_weight == 40
    assert get_history("u2", "ex-bench").progression_status == "failed"
    assert get_history("u1", "ex-squat") is None


@pytest.mark.asyncio
async def test_bodyweight_exercise_leaves_no_history():
    for _ in range(2):
        result = await evaluate_progression("u1", "ex-pushup", _sets(0, [15, 15]), 15, now=NOW)

        assert result is None

    assert get_history("u1", "ex-pushup") is None


@pytest.mark.asyncio
async def test_losing_first_insert_race_updates_existing_row(monkeypatch):
    """Test that a concurrent first completion updates the row without logging an error."""
    await evaluate_progression("u1", "ex-bench", _sets(40, [12]), 12, now=NOW)

    real_select = evaluator._select_history
    stale_reads = [None]

    def _stale_then_real(db, user_id, exercise_id):
        if stale_reads:
            return stale_reads.pop()
        return real_select(db, user_id, exercise_id)

    monkeypatch.setattr(evaluator, "_select_history", _stale_then_real)
    errors = []
    handler_id = logger.add(errors.append, level="ERROR")
    try:
        result = await evaluate_progression("u1", "ex-bench", _sets(40, [12]), 12, now=NOW)
    finally:
        logger.remove(handler_id)

    assert errors == []
    assert result.recommended_next_weight == 42
    assert get_history("u1", "ex-bench").total_volume == 480
