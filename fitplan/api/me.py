"""Authenticated user endpoints: today's session, subscription, plan week, session detail."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from fitplan.api.dependencies.auth import get_current_user_id
from fitplan.plans.resolver import get_session_detail, resolve_daily_session, resolve_plan_week, resolve_subscription
from fitplan.plans.types import PLAN_WEEKS
from fitplan.progression.evaluator import get_history

router = APIRouter(prefix="/api/me", tags=["me"])


@router.get("/today")
async def get_today(
    day: date | None = Query(default=None, alias="date", description="Calendar day (YYYY-MM-DD), defaults to today"),
    user_id: str = Depends(get_current_user_id),
) -> dict:
    """Resolve today's session and subscription status for the current user."""
    resolved = await resolve_daily_session(user_id, day)
    envelope = resolved.subscription
    return {
        "subscription": envelope.model_dump(mode="json") if envelope else None,
        "plan": (
            {
                "plan_start_date": envelope.start_at.isoformat(),
                "plan_end_date": envelope.end_at.isoformat(),
                "duration_weeks": PLAN_WEEKS,
            }
            if envelope
            else None
        ),
        "today": {
            "date": resolved.date.isoformat(),
            "week_number": resolved.week_number,
            "day_name": resolved.day_name,
            "session": resolved.session.model_dump(mode="json") if resolved.session else None,
            "is_rest_day": resolved.is_rest_day,
        },
    }


@router.get("/subscription")
async def get_subscription(user_id: str = Depends(get_current_user_id)) -> dict:
    envelope = await resolve_subscription(user_id)
    return {"subscription": envelope.model_dump(mode="json") if envelope else None}


@router.get("/plan/week")
async def get_plan_week(
    week_number: int = Query(..., alias="weekNumber", ge=1, le=PLAN_WEEKS),
    user_id: str = Depends(get_current_user_id),
) -> dict:
    """Dated days of one plan week; Daily Pins override the template per day."""
    plan = await resolve_plan_week(user_id, week_number)
    if plan is None:
        return {"plan": None, "message": "No subscription"}
    return {"plan": plan.model_dump(mode="json")}


@router.get("/session/{session_template_id}")
async def get_session(session_template_id: str, _user_id: str = Depends(get_current_user_id)) -> dict:
    detail = await get_session_detail(session_template_id)
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return {"session": detail.model_dump(mode="json")}


@router.get("/exercise/{exercise_id}/history")
def get_exercise_history(exercise_id: str, user_id: str = Depends(get_current_user_id)) -> dict:
    history = get_history(user_id, exercise_id)
    logger.debug("Fetched exercise history", user_id=user_id, exercise_id=exercise_id, found=history is not None)
    return {"history": history.model_dump(mode="json") if history else None}
