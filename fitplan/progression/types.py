"""Types for completed sets and per-exercise progression history."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fitplan.utils.timezone import to_utc

ProgressionStatus = Literal["stable", "eligible", "failed"]


class SetRecord(BaseModel):
    """A set as recorded during a workout."""

    set_number: int | None = None
    weight: float | None = None
    reps_completed: int | None = None
    completed: bool = False
    completed_at: datetime | None = None
    notes: str | None = None


class SetLog(BaseModel):
    """A completed set as kept in exercise history."""

    set_number: int
    weight: float
    reps: int
    completed: bool = True
    completed_at: datetime


class ExerciseHistoryRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    exercise_id: str
    last_weight: float = 0.0
    last_reps: list[int] = Field(default_factory=list)
    last_sets: list[SetLog] = Field(default_factory=list)
    last_completed_at: datetime | None = None
    recommended_next_weight: float | None = None
    progression_status: ProgressionStatus = "stable"
    total_volume: float | None = None

    @field_validator("last_completed_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value else None


class ProgressionResult(BaseModel):
    progression_status: ProgressionStatus
    last_weight: float
    last_reps: list[int]
    recommended_next_weight: float | None = None
    total_volume: float
