"""Coach endpoints for templates, client plan overrides and daily pins."""

import asyncio
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Path, status
from loguru import logger
from pydantic import BaseModel, Field

from fitplan.api.dependencies.auth import get_admin_id
from fitplan.api.errors import to_http_exception
from fitplan.plans import authoring, repository
from fitplan.plans.errors import FitplanError
from fitplan.plans.resolver import resolve_client_plan
from fitplan.plans.types import PLAN_WEEKS, Difficulty, OverrideWeekDays, SessionItem, WeekTemplate

router = APIRouter(prefix="/api/admin", tags=["admin"])


class CreateLevelTemplateRequest(BaseModel):
    name: str
    description: str | None = None
    is_active: bool = True


class UpdateWeeksRequest(BaseModel):
    weeks: list[WeekTemplate]


class CreateSessionTemplateRequest(BaseModel):
    title: str
    description: str | None = None
    difficulty: Difficulty | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    items: list[SessionItem] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class WeekOverrideRequest(BaseModel):
    days: OverrideWeekDays


class SessionOverrideRequest(BaseModel):
    items: list[SessionItem]


class DailyPinRequest(BaseModel):
    session_template_id: str | None = None
    week_number: int | None = None
    calorie_target: int | None = None


@router.post("/level-templates", status_code=201)
def create_level_template(request: CreateLevelTemplateRequest) -> dict:
    try:
        template = authoring.create_level_template(request.name, request.description, request.is_active)
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"level_template": template.model_dump(mode="json")}


@router.put("/level-templates/{level_template_id}/weeks")
def update_level_template_weeks(level_template_id: str, request: UpdateWeeksRequest) -> dict:
    try:
        template = authoring.update_level_template_weeks(level_template_id, request.weeks)
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"level_template": template.model_dump(mode="json")}


@router.post("/session-templates", status_code=201)
def create_session_template(request: CreateSessionTemplateRequest) -> dict:
    try:
        template = authoring.create_session_template(
            request.title,
            request.items,
            description=request.description,
            difficulty=request.difficulty,
            duration_minutes=request.duration_minutes,
            tags=request.tags,
        )
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"session_template": template.model_dump(mode="json")}


@router.get("/clients/{user_id}/plan")
async def get_client_plan(user_id: str) -> dict:
    """Merged 5-week plan of a client, with the subscription and raw override."""
    envelope, plan_override, weeks = await resolve_client_plan(user_id)
    if envelope is None:
        return {"subscription": None, "override": None, "weeks": [], "message": "No subscription"}
    return {
        "subscription": envelope.model_dump(mode="json"),
        "override": plan_override.model_dump(mode="json") if plan_override else None,
        "weeks": [w.model_dump(mode="json") for w in weeks],
    }


@router.put("/clients/{user_id}/plan/week/{week_number}")
async def set_week_override(
    user_id: str,
    request: WeekOverrideRequest,
    week_number: int = Path(..., ge=1, le=PLAN_WEEKS),
    admin_id: str | None = Depends(get_admin_id),
) -> dict:
    try:
        override = await asyncio.to_thread(
            authoring.set_week_override, user_id, week_number, request.days, admin_id=admin_id
        )
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"override": override.model_dump(mode="json")}


@router.post("/clients/{user_id}/plan/reset-week/{week_number}")
def reset_week_override(
    user_id: str,
    week_number: int = Path(..., ge=1, le=PLAN_WEEKS),
    admin_id: str | None = Depends(get_admin_id),
) -> dict:
    try:
        override = authoring.reset_week_override(user_id, week_number, admin_id=admin_id)
    except FitplanError as e:
        raise to_http_exception(e) from e
    if override is None:
        return {"override": None, "message": "No override to reset"}
    return {"override": override.model_dump(mode="json")}


@router.get("/clients/{user_id}/session-override/{session_template_id}")
def get_session_override(user_id: str, session_template_id: str) -> dict:
    override = repository.get_session_override(user_id, session_template_id)
    if override is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session override not found")
    return {"session_override": override.model_dump(mode="json")}


@router.put("/clients/{user_id}/session-override/{session_template_id}")
def upsert_session_override(
    user_id: str,
    session_template_id: str,
    request: SessionOverrideRequest,
    admin_id: str | None = Depends(get_admin_id),
) -> dict:
    try:
        override = authoring.upsert_session_override(user_id, session_template_id, request.items, admin_id=admin_id)
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"session_override": override.model_dump(mode="json")}


@router.put("/clients/{user_id}/daily/{day}")
def pin_daily_program(user_id: str, day: date, request: DailyPinRequest) -> dict:
    try:
        pin = authoring.pin_daily_program(
            user_id,
            day,
            session_template_id=request.session_template_id,
            week_number=request.week_number,
            calorie_target=request.calorie_target,
        )
    except FitplanError as e:
        raise to_http_exception(e) from e
    logger.debug("Daily pin stored via admin", user_id=user_id, day=day.isoformat())
    return {"daily_program": pin.model_dump(mode="json")}
