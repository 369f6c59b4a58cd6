from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""


class Exercise(Base):
    """Exercise catalog row.

    Only the fields joined into full session detail are stored here; the
    catalog itself is maintained elsewhere.
    """

    __tablename__ = "exercises"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    muscle_group: Mapped[str | None] = mapped_column(String, nullable=True)
    equipment: Mapped[str | None] = mapped_column(String, nullable=True)
    difficulty: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_url: Mapped[str | None] = mapped_column(String, nullable=True)


class LevelTemplate(Base):
    """Base 5-week training plan a subscription grants access to.

    Stores:
    - name: Unique display name
    - is_active: Whether coaches can still assign it
    - weeks: JSON list of exactly 5 week documents
      ({"week_number": 1..5, "days": {"mon": [placement, ...], ...}})
    """

    __tablename__ = "level_templates"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    weeks: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)


class SessionTemplate(Base):
    """Reusable, ordered exercise prescription.

    `items` order is execution order in a workout.
    """

    __tablename__ = "session_templates"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    title: Mapped[str] = mapped_column(String, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    difficulty: Mapped[str | None] = mapped_column(String, nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)


class ClientPlanOverride(Base):
    """Per-user whole-day substitutions on top of a Level Template.

    One row per user. A non-empty day list in `overrides_by_week` replaces the
    base week's day list; an empty list inherits it.
    """

    __tablename__ = "client_plan_overrides"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    base_level_template_id: Mapped[str] = mapped_column(String, nullable=False)
    overrides_by_week: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)


class SessionOverride(Base):
    """Per-user substitution of a Session Template's exercise items."""

    __tablename__ = "session_overrides"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    session_template_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (UniqueConstraint("user_id", "session_template_id", name="uq_session_override_user_template"),)


class Subscription(Base):
    """Time-bounded grant of a user to a Level Template.

    A user may have many rows over time; there is no uniqueness constraint.
    `status` is the coarse stored value (ACTIVE, EXPIRED, CANCELED); the
    effective status is computed at read time and never written back.
    `history` is an append-only JSON list of ledger actions.
    """

    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    level_template_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="ACTIVE", index=True)
    start_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    auto_renew: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    history: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_subscriptions_user_status", "user_id", "status"),
        Index("idx_subscriptions_end_status", "end_at", "status"),
    )


class DailyProgram(Base):
    """Explicit per-user per-date assignment (Daily Pin).

    `date` is stored at day granularity but may carry time-of-day noise, so
    lookups always use start-to-end-of-day bounds.
    """

    __tablename__ = "daily_programs"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    week_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    session_template_id: Mapped[str | None] = mapped_column(String, nullable=True)
    session_id: Mapped[str | None] = mapped_column(String, nullable=True)  # legacy single-session reference
    calorie_target: Mapped[int | None] = mapped_column(Integer, nullable=True)
    water_target: Mapped[int | None] = mapped_column(Integer, nullable=True)
    daily_goal: Mapped[str | None] = mapped_column(String, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_program_user_date"),)


class ExerciseHistory(Base):
    """Last completion and progression state for one user and one exercise."""

    __tablename__ = "exercise_history"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    exercise_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    last_weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_reps: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    last_sets: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    last_completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    recommended_next_weight: Mapped[float | None] = mapped_column(Float, nullable=True)
    progression_status: Mapped[str] = mapped_column(String, nullable=False, default="stable")
    total_volume: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (UniqueConstraint("user_id", "exercise_id", name="uq_exercise_history_user_exercise"),)


class WorkoutSession(Base):
    """In-progress or finished workout built from a Session Template.

    `exercises` is a JSON list of
    {"exercise_id", "status", "started_at", "completed_at", "sets": [...]}.
    """

    __tablename__ = "workout_sessions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    session_template_id: Mapped[str] = mapped_column(String, nullable=False)
    workout_type: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active", index=True)
    exercises: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class AuditLog(Base):
    """Admin action trail for plan and session overrides."""

    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    actor_admin_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    target_user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    action_type: Mapped[str] = mapped_column(String, nullable=False)
    details: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
