"""Workout session endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from fitplan.api.dependencies.auth import get_current_user_id
from fitplan.api.errors import to_http_exception
from fitplan.plans.errors import FitplanError
from fitplan.workouts import service

router = APIRouter(prefix="/api/workouts", tags=["workouts"])


class StartWorkoutRequest(BaseModel):
    session_template_id: str


class RecordSetRequest(BaseModel):
    workout_session_id: str
    exercise_id: str
    set_number: int
    weight: float | None = None
    reps_completed: int | None = None
    notes: str | None = None


class ExerciseRequest(BaseModel):
    workout_session_id: str
    exercise_id: str


class FinishWorkoutRequest(BaseModel):
    workout_session_id: str


@router.post("/start", status_code=201)
def start_workout(request: StartWorkoutRequest, user_id: str = Depends(get_current_user_id)) -> dict:
    try:
        workout = service.start_workout(user_id, request.session_template_id)
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"workout_session": workout.model_dump(mode="json")}


@router.get("/active")
def get_active_workout(user_id: str = Depends(get_current_user_id)) -> dict:
    workout = service.get_active_workout(user_id)
    if workout is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active workout session")
    return {"workout_session": workout.model_dump(mode="json")}


@router.post("/exercise/set")
def record_set(request: RecordSetRequest, user_id: str = Depends(get_current_user_id)) -> dict:
    try:
        workout = service.record_set(
            user_id,
            request.workout_session_id,
            request.exercise_id,
            request.set_number,
            request.weight,
            request.reps_completed,
            notes=request.notes,
        )
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"workout_session": workout.model_dump(mode="json")}


@router.post("/exercise/skip")
def skip_exercise(request: ExerciseRequest, user_id: str = Depends(get_current_user_id)) -> dict:
    try:
        workout = service.skip_exercise(user_id, request.workout_session_id, request.exercise_id)
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"workout_session": workout.model_dump(mode="json")}


@router.post("/exercise/complete")
async def complete_exercise(request: ExerciseRequest, user_id: str = Depends(get_current_user_id)) -> dict:
    """Complete an exercise and return the progression verdict when any set counted."""
    try:
        workout, result = await service.complete_exercise(user_id, request.workout_session_id, request.exercise_id)
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {
        "workout_session": workout.model_dump(mode="json"),
        "history": result.model_dump(mode="json") if result else None,
    }


@router.post("/complete")
def finish_workout(request: FinishWorkoutRequest, user_id: str = Depends(get_current_user_id)) -> dict:
    """Finish the workout; exercise statuses are left as recorded."""
    try:
        workout = service.finish_workout(user_id, request.workout_session_id)
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"workout_session": workout.model_dump(mode="json")}
