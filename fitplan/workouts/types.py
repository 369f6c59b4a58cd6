"""Workout session types."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fitplan.progression.types import SetRecord
from fitplan.utils.timezone import to_utc

ExerciseStatus = Literal["pending", "in_progress", "completed", "skipped"]


class WorkoutExercise(BaseModel):
    exercise_id: str
    status: ExerciseStatus = "pending"
    started_at: datetime | None = None
    completed_at: datetime | None = None
    sets: list[SetRecord] = Field(default_factory=list)


class WorkoutSession(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    session_template_id: str
    workout_type: str
    status: Literal["active", "completed"] = "active"
    exercises: list[WorkoutExercise] = Field(default_factory=list)
    started_at: datetime
    completed_at: datetime | None = None

    @field_validator("started_at", "completed_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value else None

    def exercise(self, exercise_id: str) -> WorkoutExercise | None:
        return next((e for e in self.exercises if e.exercise_id == exercise_id), None)
