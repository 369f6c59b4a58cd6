"""Validators for template and override writes.

Enforces structural invariants before anything reaches the store:
- Exactly 5 weeks with unique week_number 1..5
- 4..7 placements per week (week-update operations only)
- At most 3 alternatives per session item
"""

from loguru import logger

from fitplan.plans.errors import InvariantViolationError
from fitplan.plans.types import (
    MAX_ALTERNATIVES,
    MAX_SESSIONS_PER_WEEK,
    MIN_SESSIONS_PER_WEEK,
    PLAN_WEEKS,
    SessionItem,
    WeekDays,
    WeekOverride,
    WeekTemplate,
)


def validate_week_numbers(weeks: list[WeekTemplate] | list[WeekOverride]) -> None:
    """Validate the plan holds exactly 5 weeks numbered 1..5 without duplicates.

    Args:
        weeks: Week templates or week overrides

    Raises:
        InvariantViolationError: If the count or numbering is wrong
    """
    if len(weeks) != PLAN_WEEKS:
        raise InvariantViolationError("INVALID_WEEK_COUNT", [f"Exactly {PLAN_WEEKS} weeks required, got {len(weeks)}"])

    seen: set[int] = set()
    for index, week in enumerate(weeks, start=1):
        if not 1 <= week.week_number <= PLAN_WEEKS:
            raise InvariantViolationError(
                "INVALID_WEEK_NUMBER",
                [f"Week {index}: week_number must be 1-{PLAN_WEEKS}, got {week.week_number}"],
            )
        if week.week_number in seen:
            raise InvariantViolationError("INVALID_WEEK_NUMBER", [f"Duplicate week_number: {week.week_number}"])
        seen.add(week.week_number)


def validate_sessions_per_week(days: WeekDays, week_number: int) -> None:
    """Validate a week holds between 4 and 7 placements in total.

    Args:
        days: Day map of the week
        week_number: Week being validated (for the error message)

    Raises:
        InvariantViolationError: If the placement count is out of bounds
    """
    count = days.total_placements()
    if count < MIN_SESSIONS_PER_WEEK or count > MAX_SESSIONS_PER_WEEK:
        logger.warning("Rejected week write", week_number=week_number, placements=count)
        raise InvariantViolationError(
            "SESSIONS_PER_WEEK",
            [f"Week {week_number}: sessions per week must be {MIN_SESSIONS_PER_WEEK}-{MAX_SESSIONS_PER_WEEK} (got {count})"],
        )


def validate_weeks_update(weeks: list[WeekTemplate]) -> None:
    """Validate a full 5-week replacement submitted through the week-update operation."""
    validate_week_numbers(weeks)
    for week in weeks:
        validate_sessions_per_week(week.days, week.week_number)


def validate_session_items(items: list[SessionItem]) -> None:
    """Validate every item lists at most 3 alternatives.

    Raises:
        InvariantViolationError: If any item has too many alternatives
    """
    offending = [
        f"Item {index} ({item.exercise_id}): {len(item.alternatives)} alternatives"
        for index, item in enumerate(items, start=1)
        if len(item.alternatives) > MAX_ALTERNATIVES
    ]
    if offending:
        raise InvariantViolationError("TOO_MANY_ALTERNATIVES", offending)
