"""Coach endpoints for the subscription ledger."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from fitplan.api.dependencies.auth import get_admin_id
from fitplan.api.errors import to_http_exception
from fitplan.plans.errors import FitplanError
from fitplan.plans.repository import list_subscriptions
from fitplan.subscriptions import ledger
from fitplan.subscriptions.status import compute_subscription_state
from fitplan.utils.timezone import utcnow

router = APIRouter(prefix="/api/admin/subscriptions", tags=["admin"])


class AssignRequest(BaseModel):
    user_id: str
    level_template_id: str
    start_at: datetime
    end_at: datetime
    note: str | None = None


class RenewRequest(BaseModel):
    new_end_at: datetime
    note: str | None = None


class ChangeLevelRequest(BaseModel):
    new_level_template_id: str
    keep_dates: bool = True
    new_end_at: datetime | None = None
    note: str | None = None


class CancelRequest(BaseModel):
    note: str | None = None


@router.get("/user/{user_id}")
def get_user_subscriptions(user_id: str) -> dict:
    """Every subscription of a user with its effective status."""
    now = utcnow()
    subscriptions = []
    for sub in list_subscriptions(user_id):
        state = compute_subscription_state(sub, now)
        subscriptions.append({**sub.model_dump(mode="json"), **state.model_dump()})
    return {"subscriptions": subscriptions}


@router.post("/assign", status_code=201)
def assign(request: AssignRequest, admin_id: str | None = Depends(get_admin_id)) -> dict:
    try:
        subscription = ledger.assign(
            request.user_id,
            request.level_template_id,
            request.start_at,
            request.end_at,
            admin_id=admin_id,
            note=request.note,
        )
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"subscription": subscription.model_dump(mode="json")}


@router.put("/{subscription_id}/renew")
def renew(subscription_id: str, request: RenewRequest, admin_id: str | None = Depends(get_admin_id)) -> dict:
    try:
        subscription = ledger.renew(subscription_id, request.new_end_at, admin_id=admin_id, note=request.note)
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"subscription": subscription.model_dump(mode="json")}


@router.put("/{subscription_id}/change-level")
def change_level(
    subscription_id: str, request: ChangeLevelRequest, admin_id: str | None = Depends(get_admin_id)
) -> dict:
    try:
        subscription = ledger.change_level(
            subscription_id,
            request.new_level_template_id,
            keep_dates=request.keep_dates,
            new_end_at=request.new_end_at,
            admin_id=admin_id,
            note=request.note,
        )
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"subscription": subscription.model_dump(mode="json")}


@router.put("/{subscription_id}/cancel")
def cancel(subscription_id: str, request: CancelRequest | None = None, admin_id: str | None = Depends(get_admin_id)) -> dict:
    try:
        subscription = ledger.cancel(subscription_id, admin_id=admin_id, note=request.note if request else None)
    except FitplanError as e:
        raise to_http_exception(e) from e
    return {"subscription": subscription.model_dump(mode="json")}
