"""Subscription status state machine.

Effective status is always derived at read time from (stored status, end_at, now)
and never written back. There is no expiry job.

States:
- CANCELED: stored status CANCELED, terminal, wins over dates
- EXPIRED: now >= end_at
- EXPIRING_SOON: 0 <= days_remaining <= EXPIRING_SOON_DAYS
- ACTIVE: otherwise
"""

from datetime import datetime

from fitplan.config.settings import settings
from fitplan.plans.types import SubscriptionEnvelope
from fitplan.subscriptions.types import HistoryEntry, Subscription, SubscriptionState
from fitplan.utils.timezone import calendar_days_between, to_utc

_ACTION_LABELS = {
    "renew": "RENEW",
    "change_level": "UPGRADE",
    "cancel": "CANCELED",
}


def days_remaining(end_at: datetime, now: datetime) -> int:
    """Calendar days from today's date to end_at's date. Negative once expired."""
    return calendar_days_between(now, end_at)


def compute_subscription_state(
    subscription: Subscription | None,
    now: datetime,
    *,
    expiring_soon_days: int | None = None,
) -> SubscriptionState:
    """Compute the effective status and days remaining of a subscription.

    Args:
        subscription: Subscription snapshot, or None
        now: Current instant
        expiring_soon_days: Window for EXPIRING_SOON (defaults to settings)

    Returns:
        Effective status and days remaining
    """
    if subscription is None:
        return SubscriptionState(status="EXPIRED", days_remaining=0)
    if subscription.status == "CANCELED":
        return SubscriptionState(status="CANCELED", days_remaining=0)

    window = settings.expiring_soon_days if expiring_soon_days is None else expiring_soon_days
    days = days_remaining(subscription.end_at, now)
    if to_utc(now) >= subscription.end_at:
        return SubscriptionState(status="EXPIRED", days_remaining=days)
    if 0 <= days <= window:
        return SubscriptionState(status="EXPIRING_SOON", days_remaining=days)
    return SubscriptionState(status="ACTIVE", days_remaining=days)


def select_subscription(subscriptions: list[Subscription], now: datetime) -> Subscription | None:
    """Pick the subscription that drives a user's plan.

    Prefers a stored-ACTIVE subscription that has not ended yet; otherwise the
    one with the latest end_at regardless of status, so a user with only
    expired or canceled history still sees their most recent plan.

    Args:
        subscriptions: Every subscription row of one user
        now: Current instant

    Returns:
        Selected subscription, or None when the user never had one
    """
    if not subscriptions:
        return None
    now_utc = to_utc(now)
    live = [s for s in subscriptions if s.status == "ACTIVE" and s.end_at > now_utc]
    pool = live or subscriptions
    return max(pool, key=lambda s: s.end_at)


def last_action(history: list[HistoryEntry]) -> HistoryEntry | None:
    """Most recent ledger entry by date (history is not guaranteed insertion-ordered)."""
    if not history:
        return None
    return max(history, key=lambda entry: entry.date)


def action_label(action: str) -> str:
    return _ACTION_LABELS.get(action, action.upper())


def build_envelope(subscription: Subscription, now: datetime, level_name: str | None = None) -> SubscriptionEnvelope:
    """Normalize a subscription into the envelope returned to clients."""
    state = compute_subscription_state(subscription, now)
    last = last_action(subscription.history)
    return SubscriptionEnvelope(
        status=state.status,
        start_at=subscription.start_at,
        end_at=subscription.end_at,
        days_remaining=state.days_remaining,
        level_name=level_name,
        last_action=action_label(last.action) if last else None,
        last_action_at=last.date if last else None,
    )
