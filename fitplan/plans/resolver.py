"""Plan resolution: which session a user should perform on a calendar day.

Precedence, first match wins:
1. Daily Pin row for the day (a pin without a session is an explicit rest day)
2. Selected subscription (none means rest day)
3. Week number from the subscription start, clamped to 1..5
4. Weekday key (mon..sun)
5. Base Level Template week
6. Active plan override: a non-empty day replaces the template day wholesale
7. First placement by `order`, ties broken by list position
8. Session Template summary (or full detail)

Dangling references degrade to a rest day instead of failing the read.

SessionOverride rows are not consulted here: resolved sessions
always carry the base Session Template's items, even when a coach stored a
per-user session override. Plan overrides (whole-day) are applied; session
overrides (per-item) are write-only.
"""

import asyncio
from datetime import date, datetime, timedelta

from loguru import logger

from fitplan.plans import repository
from fitplan.plans.errors import NotConfiguredError
from fitplan.plans.types import (
    DAY_KEYS,
    DAY_NAMES,
    PLAN_WEEKS,
    ClientPlanOverride,
    DayKey,
    Exercise,
    Inherited,
    LevelTemplate,
    Placement,
    PlanDay,
    PlanWeek,
    Replaced,
    ResolvedDay,
    SessionDetail,
    SessionItemDetail,
    SessionSummary,
    SessionTemplate,
    SubscriptionEnvelope,
    WeekDays,
    WeekTemplate,
)
from fitplan.subscriptions.status import build_envelope
from fitplan.utils.timezone import start_of_day, utcnow


def compute_week_number(start_at: datetime | date, day: date) -> int:
    """Plan week containing `day`, clamped to 1..5.

    Days past the fifth week keep resolving to week 5; there is no automatic
    advance or renewal.
    """
    elapsed_days = (start_of_day(day) - start_of_day(start_at)).days
    return min(PLAN_WEEKS, max(1, elapsed_days // 7 + 1))


def day_key_for(day: date) -> DayKey:
    return DAY_KEYS[day.weekday()]


def day_name_for(day: date) -> str:
    return DAY_NAMES[day.weekday()]


def overlay_day(
    level_template: LevelTemplate,
    plan_override: ClientPlanOverride | None,
    week_number: int,
    day_key: DayKey,
) -> list[Placement]:
    """Placements for one day after applying the plan override.

    Args:
        level_template: Base plan
        plan_override: Active plan override, if any
        week_number: Plan week (1..5)
        day_key: Weekday key

    Returns:
        Placements of the day in stored order (empty for a rest day)
    """
    base_week = level_template.week(week_number)
    base = list(base_week.days.for_day(day_key)) if base_week else []
    if plan_override is None:
        return base

    override_week = plan_override.week(week_number)
    if override_week is None:
        return base

    day_override = override_week.day(day_key)
    if isinstance(day_override, Replaced):
        return list(day_override.placements)
    if isinstance(day_override, Inherited):
        return base
    raise TypeError(f"Unknown day override: {day_override!r}")


def order_placements(placements: list[Placement]) -> list[Placement]:
    """Sort by `order`; sorted() is stable so list position breaks ties."""
    return sorted(placements, key=lambda p: p.order)


def first_placement(placements: list[Placement]) -> Placement | None:
    ordered = order_placements(placements)
    return ordered[0] if ordered else None


def merge_weeks(level_template: LevelTemplate, plan_override: ClientPlanOverride | None) -> list[WeekTemplate]:
    """All 5 weeks of a user's plan with the override applied day by day."""
    merged: list[WeekTemplate] = []
    for base_week in sorted(level_template.weeks, key=lambda w: w.week_number):
        days = {
            day_key: overlay_day(level_template, plan_override, base_week.week_number, day_key)
            for day_key in DAY_KEYS
        }
        merged.append(WeekTemplate(week_number=base_week.week_number, days=WeekDays(**days)))
    return merged


def summarize_session(template: SessionTemplate) -> SessionSummary:
    return SessionSummary(
        session_template_id=template.id,
        title=template.title,
        duration_minutes=template.duration_minutes,
        difficulty=template.difficulty,
        exercise_count=len(template.items),
    )


def detail_session(template: SessionTemplate, exercises: dict[str, Exercise]) -> SessionDetail:
    """Join exercise catalog rows into a session's items.

    Unknown exercise ids are kept with `exercise=None` rather than dropped,
    so item order and count match the template.
    """
    items = [
        SessionItemDetail(
            **item.model_dump(),
            exercise=exercises.get(item.exercise_id),
            alternative_exercises=[exercises[a] for a in item.alternatives if a in exercises],
        )
        for item in template.items
    ]
    return SessionDetail(
        **summarize_session(template).model_dump(),
        description=template.description,
        items=items,
    )


def _load_session_template(session_template_id: str) -> SessionTemplate:
    template = repository.get_session_template(session_template_id)
    if template is None:
        raise NotConfiguredError("SessionTemplate", session_template_id)
    return template


async def get_session_detail(session_template_id: str) -> SessionDetail | None:
    """Full session view with exercise data joined in.

    Returns:
        SessionDetail, or None when the template does not exist
    """
    template = await asyncio.to_thread(repository.get_session_template, session_template_id)
    if template is None:
        return None
    exercise_ids = {item.exercise_id for item in template.items}
    exercise_ids.update(a for item in template.items for a in item.alternatives)
    exercises = await asyncio.to_thread(repository.get_exercises, exercise_ids)
    return detail_session(template, exercises)


async def _resolve_session(session_template_id: str, *, detail: bool) -> SessionSummary | SessionDetail | None:
    try:
        if detail:
            resolved = await get_session_detail(session_template_id)
            if resolved is None:
                raise NotConfiguredError("SessionTemplate", session_template_id)
            return resolved
        template = await asyncio.to_thread(_load_session_template, session_template_id)
        return summarize_session(template)
    except NotConfiguredError as e:
        logger.warning(f"Resolved session is not configured, treating as rest day: {e}")
        return None


async def _load_plan(subscription_level_id: str, user_id: str) -> tuple[LevelTemplate | None, ClientPlanOverride | None]:
    level_template, plan_override = await asyncio.gather(
        asyncio.to_thread(repository.get_level_template, subscription_level_id),
        asyncio.to_thread(repository.get_active_plan_override, user_id),
    )
    return level_template, plan_override


async def resolve_subscription(user_id: str, *, now: datetime | None = None) -> SubscriptionEnvelope | None:
    """Subscription envelope alone, as shown on the user's subscription screen."""
    now = now or utcnow()
    subscription = await asyncio.to_thread(repository.find_current_subscription, user_id, now)
    if subscription is None:
        return None
    level_template = await asyncio.to_thread(repository.get_level_template, subscription.level_template_id)
    return build_envelope(subscription, now, level_template.name if level_template else None)


async def resolve_daily_session(
    user_id: str,
    day: date | None = None,
    *,
    now: datetime | None = None,
    detail: bool = False,
) -> ResolvedDay:
    """Resolve the session a user should perform on a calendar day.

    Args:
        user_id: Authenticated user ID
        day: Calendar day to resolve (defaults to today's UTC date)
        now: Current instant for subscription status (defaults to now)
        detail: Return full session detail instead of a summary

    Returns:
        ResolvedDay with session (None for a rest day), week number, day name
        and the subscription envelope (None when the user has no subscription)
    """
    now = now or utcnow()
    day = day or now.date()
    day_key = day_key_for(day)

    pin, subscription = await asyncio.gather(
        asyncio.to_thread(repository.get_daily_pin, user_id, day),
        asyncio.to_thread(repository.find_current_subscription, user_id, now),
    )

    level_template: LevelTemplate | None = None
    plan_override: ClientPlanOverride | None = None
    envelope = None
    week_number = 1
    if subscription is not None:
        level_template, plan_override = await _load_plan(subscription.level_template_id, user_id)
        envelope = build_envelope(subscription, now, level_template.name if level_template else None)
        week_number = compute_week_number(subscription.start_at, day)

    session_template_id: str | None = None
    if pin is not None:
        if pin.week_number is not None:
            # Pins accept week 6; the plan view only has 5 weeks
            week_number = min(PLAN_WEEKS, pin.week_number)
        session_template_id = pin.session_reference
        logger.debug(
            "Daily pin wins",
            user_id=user_id,
            day=day.isoformat(),
            session_template_id=session_template_id,
        )
    elif subscription is not None:
        if level_template is None:
            logger.warning(
                f"Level template {subscription.level_template_id} is not configured, treating as rest day",
                user_id=user_id,
            )
        else:
            placement = first_placement(overlay_day(level_template, plan_override, week_number, day_key))
            session_template_id = placement.session_template_id if placement else None

    session = await _resolve_session(session_template_id, detail=detail) if session_template_id else None

    logger.info(
        "Resolved daily session",
        user_id=user_id,
        day=day.isoformat(),
        week_number=week_number,
        session_template_id=session.session_template_id if session else None,
    )
    return ResolvedDay(
        date=day,
        day_key=day_key,
        day_name=day_name_for(day),
        week_number=week_number,
        session=session,
        subscription=envelope,
    )


async def resolve_plan_week(user_id: str, week_number: int, *, now: datetime | None = None) -> PlanWeek | None:
    """Resolve the 7 dated days of one plan week.

    Day dates count from the subscription's start date. Each day applies the
    same precedence as resolve_daily_session but lists every placement of the
    day, ordered.

    Args:
        user_id: Authenticated user ID
        week_number: Plan week (1..5)
        now: Current instant used for subscription selection

    Returns:
        PlanWeek, or None when the user has no subscription
    """
    if not 1 <= week_number <= PLAN_WEEKS:
        raise ValueError(f"week_number must be 1-{PLAN_WEEKS}, got {week_number}")

    now = now or utcnow()
    subscription = await asyncio.to_thread(repository.find_current_subscription, user_id, now)
    if subscription is None:
        return None

    week_start = start_of_day(subscription.start_at) + timedelta(days=(week_number - 1) * 7)
    week_days = [week_start + timedelta(days=i) for i in range(7)]

    level_template, plan_override = await _load_plan(subscription.level_template_id, user_id)
    pins = await asyncio.to_thread(repository.list_daily_pins, user_id, week_days[0], week_days[-1])

    planned: list[tuple[date, list[str], bool]] = []
    for day in week_days:
        pin = pins.get(day)
        if pin is not None:
            reference = pin.session_reference
            planned.append((day, [reference] if reference else [], True))
        elif level_template is not None:
            placements = order_placements(overlay_day(level_template, plan_override, week_number, day_key_for(day)))
            planned.append((day, [p.session_template_id for p in placements], False))
        else:
            planned.append((day, [], False))

    wanted = {sid for _, ids, _ in planned for sid in ids}
    templates = await asyncio.to_thread(repository.get_session_templates, wanted)
    missing = wanted - templates.keys()
    if missing:
        logger.warning(f"Skipping unresolved session templates in plan week: {sorted(missing)}", user_id=user_id)

    days = [
        PlanDay(
            day=day_key_for(day),
            date=day,
            sessions=[summarize_session(templates[sid]) for sid in ids if sid in templates],
            pinned=pinned,
        )
        for day, ids, pinned in planned
    ]
    return PlanWeek(
        week_number=week_number,
        level_name=level_template.name if level_template else None,
        plan_start_date=subscription.start_at,
        plan_end_date=subscription.end_at,
        days=days,
    )


async def resolve_client_plan(
    user_id: str, *, now: datetime | None = None
) -> tuple[SubscriptionEnvelope | None, ClientPlanOverride | None, list[WeekTemplate]]:
    """Coach view of a client's plan: all 5 weeks with the override merged in.

    Returns:
        (subscription envelope, active override, merged weeks); weeks are empty
        when the user has no subscription or its Level Template is missing
    """
    now = now or utcnow()
    subscription = await asyncio.to_thread(repository.find_current_subscription, user_id, now)
    if subscription is None:
        return None, None, []

    level_template, plan_override = await _load_plan(subscription.level_template_id, user_id)
    envelope = build_envelope(subscription, now, level_template.name if level_template else None)
    if level_template is None:
        return envelope, plan_override, []
    return envelope, plan_override, merge_weeks(level_template, plan_override)
