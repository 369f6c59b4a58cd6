"""Progression evaluation after a completed exercise.

Rule applied (the only one):
- Every completed set reached the target rep max → status "eligible" and
  recommend last weight + PROGRESSION_WEIGHT_STEP_KG (2 kg by default)
- Otherwise → status "failed" and hold the last weight

The first evaluation for a (user, exercise) pair only records the status; a
weight recommendation appears from the second completion on.

NOTE: SessionItem.progression_rules (condition/action/weight_change/message)
are NOT evaluated here. They are stored for the admin UI only; a rule's
weight_change never affects recommended_next_weight. Do not assume the
declarative rules are live.

Writes overwrite the history row with values computed from the submitted sets,
so re-applying the same sets after a retry never double counts total_volume.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fitplan.config.settings import settings
from fitplan.db import models
from fitplan.db.session import get_session
from fitplan.plans.types import TargetReps, target_reps_max
from fitplan.progression.types import ExerciseHistoryRecord, ProgressionResult, SetLog, SetRecord
from fitplan.utils.timezone import to_storage, utcnow


@dataclass(frozen=True)
class SessionOutcome:
    """Pass/fail summary of one completed exercise."""

    all_passed: bool
    last_weight: float
    reps: list[int]
    total_volume: float
    set_logs: list[SetLog]


def counted_sets(sets: list[SetRecord]) -> list[SetRecord]:
    """Completed sets with a non-zero weight and rep count, in recorded order.

    Bodyweight sets (weight 0) and 0-rep sets never count, so a bodyweight
    exercise leaves no history and gets no weight recommendation.
    """
    return [s for s in sets if s.completed and s.weight and s.reps_completed]


def score_sets(sets: list[SetRecord], target_reps: TargetReps, now: datetime) -> SessionOutcome | None:
    """Score recorded sets against the prescribed rep target.

    Args:
        sets: Sets as recorded during the workout (incomplete sets are ignored)
        target_reps: Prescribed reps; for a range the max is the pass bar
        now: Fallback completion time for sets without one

    Returns:
        SessionOutcome, or None when no set counts
    """
    completed = counted_sets(sets)
    if not completed:
        return None

    rep_bar = target_reps_max(target_reps)
    reps = [s.reps_completed for s in completed]
    return SessionOutcome(
        all_passed=all(r >= rep_bar for r in reps),
        # Last completed set in recorded order, not the heaviest
        last_weight=completed[-1].weight,
        reps=reps,
        total_volume=sum(s.weight * s.reps_completed for s in completed),
        set_logs=[
            SetLog(
                set_number=index,
                weight=s.weight,
                reps=s.reps_completed,
                completed_at=s.completed_at or now,
            )
            for index, s in enumerate(completed, start=1)
        ],
    )


def apply_outcome(
    prior: ExerciseHistoryRecord | None,
    user_id: str,
    exercise_id: str,
    outcome: SessionOutcome,
    now: datetime,
    *,
    weight_step: float | None = None,
) -> ExerciseHistoryRecord:
    """Fold a scored session into the exercise history record.

    Args:
        prior: Existing history, or None on first completion
        user_id: User ID
        exercise_id: Exercise ID
        outcome: Scored session
        now: Completion time
        weight_step: Increase on a full pass (defaults to settings)

    Returns:
        New history record (the prior one is not mutated)
    """
    status = "eligible" if outcome.all_passed else "failed"
    base = {
        "user_id": user_id,
        "exercise_id": exercise_id,
        "last_weight": outcome.last_weight,
        "last_reps": outcome.reps,
        "last_sets": outcome.set_logs,
        "last_completed_at": now,
        "total_volume": outcome.total_volume,
        "progression_status": status,
    }
    if prior is None:
        return ExerciseHistoryRecord(**base)

    step = settings.progression_weight_step_kg if weight_step is None else weight_step
    recommended = outcome.last_weight + step if outcome.all_passed else outcome.last_weight
    return ExerciseHistoryRecord(**base, recommended_next_weight=recommended)


def _write_history(record: ExerciseHistoryRecord, row: models.ExerciseHistory) -> None:
    row.last_weight = record.last_weight
    row.last_reps = list(record.last_reps)
    row.last_sets = [s.model_dump(mode="json") for s in record.last_sets]
    row.last_completed_at = to_storage(record.last_completed_at) if record.last_completed_at else None
    row.total_volume = record.total_volume
    row.progression_status = record.progression_status
    row.recommended_next_weight = record.recommended_next_weight


def _select_history(db: Session, user_id: str, exercise_id: str) -> models.ExerciseHistory | None:
    return db.execute(
        select(models.ExerciseHistory).where(
            models.ExerciseHistory.user_id == user_id,
            models.ExerciseHistory.exercise_id == exercise_id,
        )
    ).scalar_one_or_none()


def upsert_history(user_id: str, exercise_id: str, outcome: SessionOutcome, now: datetime) -> ExerciseHistoryRecord:
    """Find-or-create the history row and overwrite it with the scored session.

    Two first completions can race on the unique (user_id, exercise_id) key.
    The loser rolls back its insert and updates the winner's row instead.
    """
    with get_session() as db:
        row = _select_history(db, user_id, exercise_id)
        if row is None:
            record = apply_outcome(None, user_id, exercise_id, outcome, now)
            row = models.ExerciseHistory(user_id=user_id, exercise_id=exercise_id)
            _write_history(record, row)
            db.add(row)
            try:
                db.flush()
            except IntegrityError:
                db.rollback()
                logger.debug("Exercise history created concurrently, updating it", user_id=user_id, exercise_id=exercise_id)
                row = _select_history(db, user_id, exercise_id)
            else:
                return record

        prior = ExerciseHistoryRecord.model_validate(row)
        record = apply_outcome(prior, user_id, exercise_id, outcome, now)
        _write_history(record, row)
        return record


def get_history(user_id: str, exercise_id: str) -> ExerciseHistoryRecord | None:
    with get_session() as db:
        row = _select_history(db, user_id, exercise_id)
        return ExerciseHistoryRecord.model_validate(row) if row else None


async def evaluate_progression(
    user_id: str,
    exercise_id: str,
    completed_sets: list[SetRecord],
    target_reps: TargetReps,
    *,
    now: datetime | None = None,
) -> ProgressionResult | None:
    """Evaluate a completed exercise and persist the user's progression history.

    Args:
        user_id: Authenticated user ID
        exercise_id: Completed exercise
        completed_sets: Sets as recorded; only completed sets with non-zero weight and reps count
        target_reps: Prescribed reps (number or {min, max})
        now: Completion time (defaults to now)

    Returns:
        ProgressionResult, or None when no set counts (nothing is written)
    """
    now = now or utcnow()
    outcome = score_sets(completed_sets, target_reps, now)
    if outcome is None:
        logger.debug("No completed sets to evaluate", user_id=user_id, exercise_id=exercise_id)
        return None

    record = await asyncio.to_thread(upsert_history, user_id, exercise_id, outcome, now)
    logger.info(
        "Evaluated progression",
        user_id=user_id,
        exercise_id=exercise_id,
        progression_status=record.progression_status,
        recommended_next_weight=record.recommended_next_weight,
    )
    return ProgressionResult(
        progression_status=record.progression_status,
        last_weight=record.last_weight,
        last_reps=record.last_reps,
        recommended_next_weight=record.recommended_next_weight,
        total_volume=record.total_volume or 0.0,
    )
