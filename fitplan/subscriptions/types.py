"""Subscription ledger types."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fitplan.utils.timezone import to_utc

StoredStatus = Literal["ACTIVE", "EXPIRED", "CANCELED"]
EffectiveStatus = Literal["ACTIVE", "EXPIRING_SOON", "EXPIRED", "CANCELED"]
LedgerAction = Literal["assign", "renew", "change_level", "cancel"]


class HistoryEntry(BaseModel):
    """One append-only ledger action.

    `action` is kept as a plain string so that rows written by older tooling
    with other action names still load.
    """

    action: str
    from_level_template_id: str | None = None
    to_level_template_id: str | None = None
    date: datetime
    admin_id: str | None = None
    note: str | None = None

    @field_validator("date")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return to_utc(value)


class Subscription(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    level_template_id: str
    status: StoredStatus = "ACTIVE"
    start_at: datetime
    end_at: datetime
    auto_renew: bool = False
    history: list[HistoryEntry] = Field(default_factory=list)

    @field_validator("start_at", "end_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return to_utc(value)


class SubscriptionState(BaseModel):
    status: EffectiveStatus
    days_remaining: int
