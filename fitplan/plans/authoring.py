"""Write-side operations for coaches: templates, overrides and daily pins.

Every write validates its invariants before touching the store. Concurrent
edits of the same row are last-write-wins; there is no optimistic locking.
"""

from datetime import date, datetime

from loguru import logger
from sqlalchemy import select

from fitplan.db import models
from fitplan.db.session import get_session
from fitplan.plans.errors import EntityNotFoundError, InvariantViolationError, LedgerConflictError
from fitplan.plans.types import (
    PLAN_WEEKS,
    ClientPlanOverride,
    DailyPin,
    Difficulty,
    LevelTemplate,
    OverrideWeekDays,
    SessionItem,
    SessionOverride,
    SessionTemplate,
    WeekTemplate,
    default_week_overrides,
    default_weeks,
)
from fitplan.plans.validators import validate_session_items, validate_sessions_per_week, validate_weeks_update
from fitplan.subscriptions.status import select_subscription
from fitplan.subscriptions.types import Subscription
from fitplan.utils.timezone import day_bounds, to_utc, utcnow


def _dump(documents: list) -> list[dict]:
    return [d.model_dump(mode="json") for d in documents]


def _audit(db, admin_id: str | None, user_id: str, action_type: str, details: dict) -> None:
    if not admin_id:
        return
    db.add(
        models.AuditLog(
            actor_admin_id=admin_id,
            target_user_id=user_id,
            action_type=action_type,
            details=details,
        )
    )


def create_level_template(name: str, description: str | None = None, is_active: bool = True) -> LevelTemplate:
    """Create a Level Template with 5 empty weeks.

    The 4..7 sessions-per-week rule does not apply on creation; it is enforced
    by update_level_template_weeks.

    Raises:
        InvariantViolationError: If the name is empty or already taken
    """
    name = name.strip()
    if not name:
        raise InvariantViolationError("INVALID_NAME", ["Name is required"])

    with get_session() as db:
        taken = db.execute(select(models.LevelTemplate.id).where(models.LevelTemplate.name == name)).first()
        if taken:
            raise InvariantViolationError("DUPLICATE_NAME", [f"Level template name already exists: {name}"])
        row = models.LevelTemplate(
            name=name,
            description=description,
            is_active=is_active,
            weeks=_dump(default_weeks()),
        )
        db.add(row)
        db.flush()
        logger.info("Created level template", level_template_id=row.id, name=name)
        return LevelTemplate.model_validate(row)


def update_level_template_weeks(level_template_id: str, weeks: list[WeekTemplate]) -> LevelTemplate:
    """Replace all 5 weeks of a Level Template.

    Args:
        level_template_id: Template to edit
        weeks: Exactly 5 weeks numbered 1..5, each with 4..7 placements

    Raises:
        InvariantViolationError: If the weeks break a structural invariant
        EntityNotFoundError: If the template does not exist
    """
    validate_weeks_update(weeks)

    with get_session() as db:
        row = db.get(models.LevelTemplate, level_template_id)
        if row is None:
            raise EntityNotFoundError("LevelTemplate", level_template_id)
        row.weeks = _dump(sorted(weeks, key=lambda w: w.week_number))
        db.flush()
        logger.info("Updated level template weeks", level_template_id=level_template_id)
        return LevelTemplate.model_validate(row)


def create_session_template(
    title: str,
    items: list[SessionItem] | None = None,
    *,
    description: str | None = None,
    difficulty: Difficulty | None = None,
    duration_minutes: int | None = None,
    tags: list[str] | None = None,
) -> SessionTemplate:
    """Create a Session Template.

    Raises:
        InvariantViolationError: If the title is empty or an item has more than 3 alternatives
    """
    items = items or []
    if not title.strip():
        raise InvariantViolationError("INVALID_TITLE", ["Title is required"])
    validate_session_items(items)

    with get_session() as db:
        row = models.SessionTemplate(
            title=title.strip(),
            description=description,
            difficulty=difficulty,
            duration_minutes=duration_minutes,
            items=_dump(items),
            tags=tags or [],
        )
        db.add(row)
        db.flush()
        logger.info("Created session template", session_template_id=row.id, items=len(items))
        return SessionTemplate.model_validate(row)


def update_session_template_items(session_template_id: str, items: list[SessionItem]) -> SessionTemplate:
    """Replace the ordered items of a Session Template."""
    validate_session_items(items)

    with get_session() as db:
        row = db.get(models.SessionTemplate, session_template_id)
        if row is None:
            raise EntityNotFoundError("SessionTemplate", session_template_id)
        row.items = _dump(items)
        db.flush()
        return SessionTemplate.model_validate(row)


def _live_subscription(db, user_id: str, now: datetime) -> Subscription | None:
    rows = db.execute(select(models.Subscription).where(models.Subscription.user_id == user_id)).scalars()
    selected = select_subscription([Subscription.model_validate(r) for r in rows], now)
    if selected is None or selected.status != "ACTIVE" or selected.end_at <= to_utc(now):
        return None
    return selected


def set_week_override(
    user_id: str,
    week_number: int,
    days: OverrideWeekDays,
    *,
    admin_id: str | None = None,
    now: datetime | None = None,
) -> ClientPlanOverride:
    """Replace one week of a user's plan override.

    Creates the override on first use, based on the user's active
    subscription's Level Template.

    Args:
        user_id: Client user ID
        week_number: Plan week (1..5)
        days: Day lists for the week; an empty day inherits the base template
        admin_id: Acting coach, recorded in the audit log when given
        now: Current instant for the active-subscription check

    Raises:
        InvariantViolationError: If week_number is out of range or the week holds
            fewer than 4 or more than 7 placements
        LedgerConflictError: If the user has no active subscription
    """
    if not 1 <= week_number <= PLAN_WEEKS:
        raise InvariantViolationError("INVALID_WEEK_NUMBER", [f"week_number must be 1-{PLAN_WEEKS}, got {week_number}"])
    validate_sessions_per_week(days, week_number)

    now = now or utcnow()
    with get_session() as db:
        subscription = _live_subscription(db, user_id, now)
        if subscription is None:
            raise LedgerConflictError(f"No active subscription for user {user_id}")

        row = db.execute(
            select(models.ClientPlanOverride).where(models.ClientPlanOverride.user_id == user_id)
        ).scalar_one_or_none()
        if row is None:
            row = models.ClientPlanOverride(
                user_id=user_id,
                base_level_template_id=subscription.level_template_id,
                overrides_by_week=_dump(default_week_overrides()),
                status="active",
            )
            db.add(row)
            db.flush()

        override = ClientPlanOverride.model_validate(row)
        weeks = [w for w in override.overrides_by_week if w.week_number != week_number]
        weeks.append(override.week(week_number) or default_week_overrides()[week_number - 1])
        weeks[-1] = weeks[-1].model_copy(update={"days": days})
        row.overrides_by_week = _dump(sorted(weeks, key=lambda w: w.week_number))

        _audit(db, admin_id, user_id, "plan_override", {"week_number": week_number})
        db.flush()
        logger.info("Set week override", user_id=user_id, week_number=week_number, admin_id=admin_id)
        return ClientPlanOverride.model_validate(row)


def reset_week_override(user_id: str, week_number: int, *, admin_id: str | None = None) -> ClientPlanOverride | None:
    """Make every day of one override week inherit the base template again.

    The day lists are emptied rather than filled with a copy of the base week,
    so later edits to the Level Template show through for this user.

    Returns:
        Updated override, or None when the user has no override
    """
    if not 1 <= week_number <= PLAN_WEEKS:
        raise InvariantViolationError("INVALID_WEEK_NUMBER", [f"week_number must be 1-{PLAN_WEEKS}, got {week_number}"])

    with get_session() as db:
        row = db.execute(
            select(models.ClientPlanOverride).where(models.ClientPlanOverride.user_id == user_id)
        ).scalar_one_or_none()
        if row is None:
            logger.info("No override to reset", user_id=user_id)
            return None

        override = ClientPlanOverride.model_validate(row)
        weeks = [
            w.model_copy(update={"days": OverrideWeekDays()}) if w.week_number == week_number else w
            for w in override.overrides_by_week
        ]
        row.overrides_by_week = _dump(weeks)
        _audit(db, admin_id, user_id, "plan_override", {"week_number": week_number, "action": "reset"})
        db.flush()
        return ClientPlanOverride.model_validate(row)


def set_plan_override_status(user_id: str, status: str) -> ClientPlanOverride:
    """Activate or deactivate a user's plan override without touching its weeks."""
    if status not in {"active", "inactive"}:
        raise InvariantViolationError("INVALID_STATUS", [f"status must be active or inactive, got {status}"])

    with get_session() as db:
        row = db.execute(
            select(models.ClientPlanOverride).where(models.ClientPlanOverride.user_id == user_id)
        ).scalar_one_or_none()
        if row is None:
            raise EntityNotFoundError("ClientPlanOverride", user_id)
        row.status = status
        db.flush()
        return ClientPlanOverride.model_validate(row)


def upsert_session_override(
    user_id: str,
    session_template_id: str,
    items: list[SessionItem],
    *,
    admin_id: str | None = None,
) -> SessionOverride:
    """Store a user's substituted exercise items for a Session Template.

    The override is persisted but plan resolution does not read it; resolved
    sessions keep showing the base template's items.

    Raises:
        EntityNotFoundError: If the session template does not exist
        InvariantViolationError: If an item has more than 3 alternatives
    """
    validate_session_items(items)

    with get_session() as db:
        if db.get(models.SessionTemplate, session_template_id) is None:
            raise EntityNotFoundError("SessionTemplate", session_template_id)

        row = db.execute(
            select(models.SessionOverride).where(
                models.SessionOverride.user_id == user_id,
                models.SessionOverride.session_template_id == session_template_id,
            )
        ).scalar_one_or_none()
        if row is None:
            row = models.SessionOverride(user_id=user_id, session_template_id=session_template_id)
            db.add(row)
        row.items = _dump(items)

        _audit(db, admin_id, user_id, "session_override", {"session_template_id": session_template_id})
        db.flush()
        logger.info("Stored session override", user_id=user_id, session_template_id=session_template_id)
        return SessionOverride.model_validate(row)


def pin_daily_program(
    user_id: str,
    day: date,
    *,
    session_template_id: str | None = None,
    week_number: int | None = None,
    calorie_target: int | None = None,
) -> DailyPin:
    """Create or replace the Daily Pin of a user for one calendar day.

    A pin without session_template_id makes the day an explicit rest day.

    Raises:
        InvariantViolationError: If week_number is outside 1..6
    """
    if week_number is not None and not 1 <= week_number <= 6:
        raise InvariantViolationError("INVALID_WEEK_NUMBER", [f"week_number must be 1-6, got {week_number}"])

    day_start, day_end = day_bounds(day)
    with get_session() as db:
        row = db.execute(
            select(models.DailyProgram).where(
                models.DailyProgram.user_id == user_id,
                models.DailyProgram.date >= day_start,
                models.DailyProgram.date <= day_end,
            )
        ).scalars().first()
        if row is None:
            row = models.DailyProgram(user_id=user_id, date=day_start)
            db.add(row)
        row.session_template_id = session_template_id
        row.week_number = week_number
        row.calorie_target = calorie_target
        db.flush()
        logger.info("Pinned daily program", user_id=user_id, day=day.isoformat(), session_template_id=session_template_id)
        return DailyPin.model_validate(row)
