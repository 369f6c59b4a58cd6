"""Domain types for templates, overrides and daily pins.

Rows are loaded from the store into these models and treated as a read-only
snapshot for the duration of one resolution.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fitplan.utils.timezone import to_utc

DayKey = Literal["mon", "tue", "wed", "thu", "fri", "sat", "sun"]
DAY_KEYS: tuple[DayKey, ...] = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
DAY_NAMES: tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

PLAN_WEEKS = 5
MIN_SESSIONS_PER_WEEK = 4
MAX_SESSIONS_PER_WEEK = 7
MAX_ALTERNATIVES = 3

Difficulty = Literal["beginner", "intermediate", "advanced"]


class RepRange(BaseModel):
    min: int
    max: int


TargetReps = int | RepRange


def target_reps_max(target_reps: TargetReps) -> int:
    """Pass bar for a prescription: the value itself, or the range's max."""
    if isinstance(target_reps, RepRange):
        return target_reps.max
    return target_reps


class ProgressionRule(BaseModel):
    """Declarative progression rule attached to a session item.

    Stored for the admin UI. The progression evaluator does not apply these;
    see fitplan.progression.evaluator.
    """

    condition: Literal["reps_above", "reps_below", "reps_in_range"]
    value: int | RepRange
    action: Literal["increase_weight", "decrease_weight", "maintain_weight"]
    weight_change: float | None = None
    message: str | None = None


class SessionItem(BaseModel):
    """One exercise prescription inside a session.

    Attributes:
        exercise_id: Prescribed exercise
        alternatives: Substitute exercises (at most 3, checked on write)
        sets: Number of working sets
        target_reps: Rep target, a number or a {min, max} range
        rest_time_seconds: Rest between sets
        recommended_starting_weight_kg: Suggested first-time load
        progression_rules: Declarative rules (inert at evaluation time)
        order: Display order hint; list position is execution order
    """

    exercise_id: str
    alternatives: list[str] = Field(default_factory=list)
    sets: int = Field(ge=1)
    target_reps: TargetReps
    rest_time_seconds: int = 60
    recommended_starting_weight_kg: float | None = None
    progression_rules: list[ProgressionRule] = Field(default_factory=list)
    order: int = 0


class Placement(BaseModel):
    session_template_id: str
    note: str | None = None
    order: int = 0


class OverridePlacement(Placement):
    # Points at a SessionOverride; stored but not read by resolution
    override_session_config_id: str | None = None


class WeekDays(BaseModel):
    """Placements per weekday, order within a day is significant."""

    mon: list[Placement] = Field(default_factory=list)
    tue: list[Placement] = Field(default_factory=list)
    wed: list[Placement] = Field(default_factory=list)
    thu: list[Placement] = Field(default_factory=list)
    fri: list[Placement] = Field(default_factory=list)
    sat: list[Placement] = Field(default_factory=list)
    sun: list[Placement] = Field(default_factory=list)

    def for_day(self, day_key: DayKey) -> list[Placement]:
        return getattr(self, day_key)

    def total_placements(self) -> int:
        return sum(len(self.for_day(d)) for d in DAY_KEYS)


class OverrideWeekDays(WeekDays):
    mon: list[OverridePlacement] = Field(default_factory=list)
    tue: list[OverridePlacement] = Field(default_factory=list)
    wed: list[OverridePlacement] = Field(default_factory=list)
    thu: list[OverridePlacement] = Field(default_factory=list)
    fri: list[OverridePlacement] = Field(default_factory=list)
    sat: list[OverridePlacement] = Field(default_factory=list)
    sun: list[OverridePlacement] = Field(default_factory=list)


class WeekTemplate(BaseModel):
    week_number: int = Field(ge=1, le=PLAN_WEEKS)
    days: WeekDays = Field(default_factory=WeekDays)


@dataclass(frozen=True)
class Inherited:
    """Override leaves the base template's day untouched."""


@dataclass(frozen=True)
class Replaced:
    """Override redefines the whole day; the base day's placements are ignored."""

    placements: tuple[Placement, ...]


DayOverride = Inherited | Replaced


class WeekOverride(BaseModel):
    week_number: int = Field(ge=1, le=PLAN_WEEKS)
    days: OverrideWeekDays = Field(default_factory=OverrideWeekDays)

    def day(self, day_key: DayKey) -> DayOverride:
        """Interpret the stored day list: empty inherits, non-empty replaces."""
        placements = self.days.for_day(day_key)
        if not placements:
            return Inherited()
        return Replaced(tuple(placements))


def default_weeks() -> list[WeekTemplate]:
    return [WeekTemplate(week_number=n) for n in range(1, PLAN_WEEKS + 1)]


def default_week_overrides() -> list[WeekOverride]:
    return [WeekOverride(week_number=n) for n in range(1, PLAN_WEEKS + 1)]


class LevelTemplate(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    is_active: bool = True
    weeks: list[WeekTemplate] = Field(default_factory=default_weeks)

    def week(self, week_number: int) -> WeekTemplate | None:
        return next((w for w in self.weeks if w.week_number == week_number), None)


class SessionTemplate(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str | None = None
    difficulty: Difficulty | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    items: list[SessionItem] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class ClientPlanOverride(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    base_level_template_id: str
    overrides_by_week: list[WeekOverride] = Field(default_factory=default_week_overrides)
    status: Literal["active", "inactive"] = "active"

    def week(self, week_number: int) -> WeekOverride | None:
        return next((w for w in self.overrides_by_week if w.week_number == week_number), None)


class SessionOverride(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    session_template_id: str
    items: list[SessionItem] = Field(default_factory=list)


class DailyPin(BaseModel):
    """Daily Pin snapshot (DailyProgram row)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    date: datetime
    week_number: int | None = None
    session_template_id: str | None = None
    session_id: str | None = None
    calorie_target: int | None = None
    completed: bool = False

    @field_validator("date")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return to_utc(value)

    @property
    def session_reference(self) -> str | None:
        """Pinned session, falling back to the legacy single-session reference."""
        return self.session_template_id or self.session_id


class Exercise(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    muscle_group: str | None = None
    equipment: str | None = None
    difficulty: str | None = None
    description: str | None = None
    video_url: str | None = None


class SessionSummary(BaseModel):
    """Lightweight session view for dashboards."""

    session_template_id: str
    title: str
    duration_minutes: int | None = None
    difficulty: str | None = None
    exercise_count: int = 0


class SessionItemDetail(SessionItem):
    exercise: Exercise | None = None
    alternative_exercises: list[Exercise] = Field(default_factory=list)


class SessionDetail(SessionSummary):
    """Full session view with exercise data joined in, for rendering a workout."""

    description: str | None = None
    items: list[SessionItemDetail] = Field(default_factory=list)


class SubscriptionEnvelope(BaseModel):
    status: Literal["ACTIVE", "EXPIRING_SOON", "EXPIRED", "CANCELED"]
    start_at: datetime
    end_at: datetime
    days_remaining: int
    level_name: str | None = None
    last_action: str | None = None
    last_action_at: datetime | None = None


class ResolvedDay(BaseModel):
    date: date
    day_key: DayKey
    day_name: str
    week_number: int
    session: SessionDetail | SessionSummary | None = None
    subscription: SubscriptionEnvelope | None = None

    @property
    def is_rest_day(self) -> bool:
        return self.session is None


class PlanDay(BaseModel):
    day: DayKey
    date: date
    sessions: list[SessionSummary] = Field(default_factory=list)
    pinned: bool = False


class PlanWeek(BaseModel):
    week_number: int
    level_name: str | None = None
    plan_start_date: datetime
    plan_end_date: datetime
    duration_weeks: int = PLAN_WEEKS
    days: list[PlanDay] = Field(default_factory=list)
