"""Error types for plan resolution, authoring and the subscription ledger.

Standard invariant codes:
- INVALID_WEEK_COUNT: A plan must contain exactly 5 weeks
- INVALID_WEEK_NUMBER: week_number outside 1..5 or duplicated
- SESSIONS_PER_WEEK: A week must hold 4..7 placements
- TOO_MANY_ALTERNATIVES: A session item lists more than 3 alternatives

A user without any subscription is a valid state, not an error, so there is
no NoSubscription type here.
"""


class FitplanError(RuntimeError):
    """Base class for expected business-rule errors.

    These roll back the current database session without being logged as
    database failures.
    """


class InvariantViolationError(FitplanError):
    """Raised when a write would persist a structurally invalid template or override.

    Attributes:
        code: Error code (e.g., "SESSIONS_PER_WEEK")
        details: List of error detail strings
    """

    def __init__(self, code: str, details: list[str]):
        self.code = code
        self.details = details
        super().__init__(f"{code}: {details}")


class NotConfiguredError(FitplanError):
    """Raised when a stored reference no longer resolves (deleted after being placed).

    The resolver catches this and degrades to a rest day.
    """

    def __init__(self, entity: str, entity_id: str | None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id!r} is not configured")


class EntityNotFoundError(FitplanError):
    """Raised when an authoring, ledger or workout operation targets a missing row."""

    def __init__(self, entity: str, entity_id: str | None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class LedgerConflictError(FitplanError):
    """Raised when a subscription ledger action is not allowed in the current state."""
