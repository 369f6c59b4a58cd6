"""Workout session flow: start a workout, record sets, skip or complete an
exercise, then finish the workout.

Completing an exercise performs two independent writes: the workout session
state, then the exercise history via the progression evaluator. They are not
wrapped in one transaction; each can be retried on its own, and re-running
the evaluator with the same sets is idempotent.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime

from loguru import logger
from sqlalchemy import select

from fitplan.config.settings import settings
from fitplan.db import models
from fitplan.db.session import get_session
from fitplan.plans import repository
from fitplan.plans.errors import EntityNotFoundError
from fitplan.plans.types import TargetReps
from fitplan.progression.evaluator import evaluate_progression
from fitplan.progression.types import ProgressionResult, SetRecord
from fitplan.utils.timezone import to_storage, utcnow
from fitplan.workouts.types import WorkoutExercise, WorkoutSession


def start_workout(user_id: str, session_template_id: str, *, now: datetime | None = None) -> WorkoutSession:
    """Start a workout from a Session Template, one pending entry per item.

    Raises:
        EntityNotFoundError: If the session template does not exist
    """
    template = repository.get_session_template(session_template_id)
    if template is None:
        raise EntityNotFoundError("SessionTemplate", session_template_id)

    exercises = [
        WorkoutExercise(
            exercise_id=item.exercise_id,
            sets=[SetRecord(set_number=n) for n in range(1, item.sets + 1)],
        )
        for item in template.items
    ]
    with get_session() as db:
        row = models.WorkoutSession(
            user_id=user_id,
            session_template_id=session_template_id,
            workout_type=template.title,
            status="active",
            exercises=[e.model_dump(mode="json") for e in exercises],
            started_at=to_storage(now or utcnow()),
        )
        db.add(row)
        db.flush()
        logger.info("Started workout", user_id=user_id, workout_session_id=row.id, session_template_id=session_template_id)
        return WorkoutSession.model_validate(row)


def _mutate_exercise(
    user_id: str,
    workout_session_id: str,
    exercise_id: str,
    mutate: Callable[[WorkoutExercise], None],
) -> WorkoutSession:
    """Load a workout owned by the user, apply `mutate` to one exercise, persist."""
    with get_session() as db:
        row = db.get(models.WorkoutSession, workout_session_id)
        if row is None or row.user_id != user_id:
            raise EntityNotFoundError("WorkoutSession", workout_session_id)

        workout = WorkoutSession.model_validate(row)
        exercise = workout.exercise(exercise_id)
        if exercise is None:
            raise EntityNotFoundError("WorkoutExercise", exercise_id)
        mutate(exercise)

        row.exercises = [e.model_dump(mode="json") for e in workout.exercises]
        db.flush()
        return workout


def record_set(
    user_id: str,
    workout_session_id: str,
    exercise_id: str,
    set_number: int,
    weight: float | None,
    reps_completed: int | None,
    *,
    notes: str | None = None,
    now: datetime | None = None,
) -> WorkoutSession:
    """Record one set as completed, adding it when the prescription had fewer sets."""
    now = now or utcnow()

    def _apply(exercise: WorkoutExercise) -> None:
        target = next((s for s in exercise.sets if s.set_number == set_number), None)
        if target is None:
            target = SetRecord(set_number=set_number)
            exercise.sets.append(target)
        target.weight = weight
        target.reps_completed = reps_completed
        if notes is not None:
            target.notes = notes
        target.completed = True
        target.completed_at = now
        if exercise.status == "pending":
            exercise.status = "in_progress"
            exercise.started_at = now

    return _mutate_exercise(user_id, workout_session_id, exercise_id, _apply)


def skip_exercise(user_id: str, workout_session_id: str, exercise_id: str) -> WorkoutSession:
    def _apply(exercise: WorkoutExercise) -> None:
        exercise.status = "skipped"

    return _mutate_exercise(user_id, workout_session_id, exercise_id, _apply)


def prescribed_target_reps(session_template_id: str, exercise_id: str) -> TargetReps:
    """Target reps of an exercise in a session template, or the configured default."""
    template = repository.get_session_template(session_template_id)
    if template is not None:
        item = next((i for i in template.items if i.exercise_id == exercise_id), None)
        if item is not None:
            return item.target_reps
    logger.debug(
        f"No prescription found, using default target of {settings.default_target_reps} reps",
        session_template_id=session_template_id,
        exercise_id=exercise_id,
    )
    return settings.default_target_reps


async def complete_exercise(
    user_id: str,
    workout_session_id: str,
    exercise_id: str,
    *,
    now: datetime | None = None,
) -> tuple[WorkoutSession, ProgressionResult | None]:
    """Mark an exercise completed and evaluate progression on its recorded sets.

    Returns:
        Updated workout session and the progression result (None when no set counted)
    """
    now = now or utcnow()

    def _apply(exercise: WorkoutExercise) -> None:
        exercise.status = "completed"
        exercise.completed_at = now

    workout = await asyncio.to_thread(_mutate_exercise, user_id, workout_session_id, exercise_id, _apply)
    target_reps = await asyncio.to_thread(prescribed_target_reps, workout.session_template_id, exercise_id)

    exercise = workout.exercise(exercise_id)
    sets = exercise.sets if exercise else []
    result = await evaluate_progression(user_id, exercise_id, sets, target_reps, now=now)
    return workout, result


def finish_workout(user_id: str, workout_session_id: str, *, now: datetime | None = None) -> WorkoutSession:
    """Close a workout. Exercises keep whatever status they reached.

    Finishing an already finished workout returns it unchanged.

    Raises:
        EntityNotFoundError: If the workout does not exist or belongs to another user
    """
    with get_session() as db:
        row = db.get(models.WorkoutSession, workout_session_id)
        if row is None or row.user_id != user_id:
            raise EntityNotFoundError("WorkoutSession", workout_session_id)

        if row.status == "completed":
            logger.debug("Workout already finished", user_id=user_id, workout_session_id=workout_session_id)
            return WorkoutSession.model_validate(row)

        row.status = "completed"
        row.completed_at = to_storage(now or utcnow())
        db.flush()
        workout = WorkoutSession.model_validate(row)

    completed = sum(1 for e in workout.exercises if e.status == "completed")
    logger.info(
        "Finished workout",
        user_id=user_id,
        workout_session_id=workout_session_id,
        completed_exercises=completed,
        total_exercises=len(workout.exercises),
    )
    return workout


def get_active_workout(user_id: str) -> WorkoutSession | None:
    """Most recently started workout of the user that is still active."""
    with get_session() as db:
        row = db.execute(
            select(models.WorkoutSession)
            .where(models.WorkoutSession.user_id == user_id, models.WorkoutSession.status == "active")
            .order_by(models.WorkoutSession.started_at.desc())
            .limit(1)
        ).scalar_one_or_none()
        return WorkoutSession.model_validate(row) if row else None
