"""Read-side store functions for plan resolution.

Every function opens its own short session and returns detached pydantic
snapshots, so callers can run them concurrently on worker threads.
"""

from datetime import date, datetime

from loguru import logger
from sqlalchemy import select

from fitplan.db import models
from fitplan.db.session import get_session
from fitplan.plans.types import ClientPlanOverride, DailyPin, Exercise, LevelTemplate, SessionOverride, SessionTemplate
from fitplan.subscriptions.status import select_subscription
from fitplan.subscriptions.types import Subscription
from fitplan.utils.timezone import day_bounds


def get_daily_pin(user_id: str, day: date) -> DailyPin | None:
    """Get the Daily Pin row for a user and calendar day.

    Matches anything stored within the day's start and end bounds rather than
    an exact timestamp, since stored dates may carry time-of-day noise.

    Args:
        user_id: User ID
        day: Calendar day

    Returns:
        DailyPin snapshot, or None when no row exists
    """
    day_start, day_end = day_bounds(day)
    with get_session() as db:
        row = db.execute(
            select(models.DailyProgram)
            .where(
                models.DailyProgram.user_id == user_id,
                models.DailyProgram.date >= day_start,
                models.DailyProgram.date <= day_end,
            )
            .order_by(models.DailyProgram.date)
            .limit(1)
        ).scalar_one_or_none()
        return DailyPin.model_validate(row) if row else None


def list_daily_pins(user_id: str, start_day: date, end_day: date) -> dict[date, DailyPin]:
    """Get Daily Pins in an inclusive day range, keyed by calendar day."""
    range_start, _ = day_bounds(start_day)
    _, range_end = day_bounds(end_day)
    with get_session() as db:
        rows = db.execute(
            select(models.DailyProgram)
            .where(
                models.DailyProgram.user_id == user_id,
                models.DailyProgram.date >= range_start,
                models.DailyProgram.date <= range_end,
            )
            .order_by(models.DailyProgram.date)
        ).scalars()
        pins: dict[date, DailyPin] = {}
        for row in rows:
            pin = DailyPin.model_validate(row)
            pins.setdefault(pin.date.date(), pin)
        return pins


def list_subscriptions(user_id: str) -> list[Subscription]:
    """Get every subscription of a user, latest end_at first."""
    with get_session() as db:
        rows = db.execute(
            select(models.Subscription)
            .where(models.Subscription.user_id == user_id)
            .order_by(models.Subscription.end_at.desc())
        ).scalars()
        return [Subscription.model_validate(row) for row in rows]


def find_current_subscription(user_id: str, now: datetime) -> Subscription | None:
    """Select the subscription that drives the user's plan at `now`.

    Returns:
        Selected subscription, or None when the user has none at all
    """
    subscription = select_subscription(list_subscriptions(user_id), now)
    logger.debug(
        "Selected subscription",
        user_id=user_id,
        subscription_id=subscription.id if subscription else None,
    )
    return subscription


def get_level_template(level_template_id: str) -> LevelTemplate | None:
    with get_session() as db:
        row = db.get(models.LevelTemplate, level_template_id)
        return LevelTemplate.model_validate(row) if row else None


def get_active_plan_override(user_id: str) -> ClientPlanOverride | None:
    """Get the user's plan override when its status is active."""
    with get_session() as db:
        row = db.execute(
            select(models.ClientPlanOverride).where(
                models.ClientPlanOverride.user_id == user_id,
                models.ClientPlanOverride.status == "active",
            )
        ).scalar_one_or_none()
        return ClientPlanOverride.model_validate(row) if row else None


def get_session_template(session_template_id: str) -> SessionTemplate | None:
    with get_session() as db:
        row = db.get(models.SessionTemplate, session_template_id)
        return SessionTemplate.model_validate(row) if row else None


def get_session_templates(session_template_ids: set[str]) -> dict[str, SessionTemplate]:
    """Batch-load session templates; missing ids are simply absent from the result."""
    if not session_template_ids:
        return {}
    with get_session() as db:
        rows = db.execute(
            select(models.SessionTemplate).where(models.SessionTemplate.id.in_(session_template_ids))
        ).scalars()
        return {row.id: SessionTemplate.model_validate(row) for row in rows}


def get_exercises(exercise_ids: set[str]) -> dict[str, Exercise]:
    if not exercise_ids:
        return {}
    with get_session() as db:
        rows = db.execute(select(models.Exercise).where(models.Exercise.id.in_(exercise_ids))).scalars()
        return {row.id: Exercise.model_validate(row) for row in rows}


def get_session_override(user_id: str, session_template_id: str) -> SessionOverride | None:
    """Get a user's session override.

    Only authoring reads this; plan resolution never does.
    """
    with get_session() as db:
        row = db.execute(
            select(models.SessionOverride).where(
                models.SessionOverride.user_id == user_id,
                models.SessionOverride.session_template_id == session_template_id,
            )
        ).scalar_one_or_none()
        return SessionOverride.model_validate(row) if row else None
