"""Subscription ledger actions: assign, renew, change level, cancel.

Each action appends exactly one HistoryEntry. Assigning a new subscription
creates a new row rather than mutating an old one, so a user accumulates a
history of subscriptions and the current one is chosen by query.
"""

from datetime import datetime

from loguru import logger
from sqlalchemy import select

from fitplan.db import models
from fitplan.db.session import get_session
from fitplan.plans.errors import EntityNotFoundError, LedgerConflictError
from fitplan.subscriptions.types import HistoryEntry, LedgerAction, Subscription
from fitplan.utils.timezone import to_storage, to_utc, utcnow


def _append_history(
    row: models.Subscription,
    action: LedgerAction,
    *,
    from_level_template_id: str | None = None,
    to_level_template_id: str | None = None,
    admin_id: str | None = None,
    note: str | None = None,
) -> None:
    entry = HistoryEntry(
        action=action,
        from_level_template_id=from_level_template_id,
        to_level_template_id=to_level_template_id,
        date=utcnow(),
        admin_id=admin_id,
        note=note,
    )
    # Reassign so SQLAlchemy sees the JSON column change
    row.history = [*(row.history or []), entry.model_dump(mode="json")]


def _get_row(db, subscription_id: str) -> models.Subscription:
    row = db.get(models.Subscription, subscription_id)
    if row is None:
        raise EntityNotFoundError("Subscription", subscription_id)
    return row


def assign(
    user_id: str,
    level_template_id: str,
    start_at: datetime,
    end_at: datetime,
    *,
    admin_id: str | None = None,
    note: str | None = None,
    now: datetime | None = None,
) -> Subscription:
    """Grant a user a new subscription to a Level Template.

    Raises:
        LedgerConflictError: If end_at is not after start_at, or the user already
            holds an ACTIVE subscription that has not ended
        EntityNotFoundError: If the Level Template does not exist
    """
    start_utc, end_utc = to_utc(start_at), to_utc(end_at)
    if end_utc <= start_utc:
        raise LedgerConflictError("end_at must be after start_at")

    now_storage = to_storage(now or utcnow())
    with get_session() as db:
        if db.get(models.LevelTemplate, level_template_id) is None:
            raise EntityNotFoundError("LevelTemplate", level_template_id)

        active = db.execute(
            select(models.Subscription.id).where(
                models.Subscription.user_id == user_id,
                models.Subscription.status == "ACTIVE",
                models.Subscription.end_at > now_storage,
            )
        ).first()
        if active:
            raise LedgerConflictError("User already has an active subscription. Cancel it first or use change-level.")

        row = models.Subscription(
            user_id=user_id,
            level_template_id=level_template_id,
            status="ACTIVE",
            start_at=to_storage(start_utc),
            end_at=to_storage(end_utc),
            auto_renew=False,
            history=[],
        )
        _append_history(row, "assign", to_level_template_id=level_template_id, admin_id=admin_id, note=note)
        db.add(row)
        db.flush()
        logger.info("Assigned subscription", user_id=user_id, subscription_id=row.id, level_template_id=level_template_id)
        return Subscription.model_validate(row)


def renew(
    subscription_id: str,
    new_end_at: datetime,
    *,
    admin_id: str | None = None,
    note: str | None = None,
) -> Subscription:
    """Extend a subscription's end date.

    Raises:
        LedgerConflictError: If new_end_at is not after the current end_at
    """
    with get_session() as db:
        row = _get_row(db, subscription_id)
        if to_utc(new_end_at) <= to_utc(row.end_at):
            raise LedgerConflictError("new_end_at must be after current end_at")
        row.end_at = to_storage(new_end_at)
        _append_history(
            row,
            "renew",
            from_level_template_id=row.level_template_id,
            to_level_template_id=row.level_template_id,
            admin_id=admin_id,
            note=note,
        )
        db.flush()
        logger.info("Renewed subscription", subscription_id=subscription_id)
        return Subscription.model_validate(row)


def change_level(
    subscription_id: str,
    new_level_template_id: str,
    *,
    keep_dates: bool = True,
    new_end_at: datetime | None = None,
    admin_id: str | None = None,
    note: str | None = None,
) -> Subscription:
    """Move a subscription to another Level Template.

    The end date only moves when keep_dates is False and new_end_at is given.

    Raises:
        EntityNotFoundError: If the subscription or the new Level Template does not exist
    """
    with get_session() as db:
        row = _get_row(db, subscription_id)
        if db.get(models.LevelTemplate, new_level_template_id) is None:
            raise EntityNotFoundError("LevelTemplate", new_level_template_id)

        from_level = row.level_template_id
        row.level_template_id = new_level_template_id
        if not keep_dates and new_end_at is not None:
            row.end_at = to_storage(new_end_at)
        _append_history(
            row,
            "change_level",
            from_level_template_id=from_level,
            to_level_template_id=new_level_template_id,
            admin_id=admin_id,
            note=note,
        )
        db.flush()
        logger.info("Changed subscription level", subscription_id=subscription_id, from_level=from_level, to_level=new_level_template_id)
        return Subscription.model_validate(row)


def cancel(subscription_id: str, *, admin_id: str | None = None, note: str | None = None) -> Subscription:
    """Cancel a subscription. CANCELED is terminal for status computation."""
    with get_session() as db:
        row = _get_row(db, subscription_id)
        row.status = "CANCELED"
        _append_history(row, "cancel", from_level_template_id=row.level_template_id, admin_id=admin_id, note=note)
        db.flush()
        logger.info("Canceled subscription", subscription_id=subscription_id)
        return Subscription.model_validate(row)
