"""Plans module - which session a user performs on a given day.

This module provides:
- Template, override and daily pin types (types)
- Structural validators for Level Templates and overrides (validators)
- Daily and weekly plan resolution (resolver)
- Coach-side authoring operations (authoring)

Only the leaf modules are re-exported here; import resolver and authoring
directly.
"""

from fitplan.plans.errors import (
    EntityNotFoundError,
    FitplanError,
    InvariantViolationError,
    LedgerConflictError,
    NotConfiguredError,
)
from fitplan.plans.types import (
    ClientPlanOverride,
    DailyPin,
    LevelTemplate,
    ResolvedDay,
    SessionItem,
    SessionTemplate,
)

__all__ = [
    "ClientPlanOverride",
    "DailyPin",
    "EntityNotFoundError",
    "FitplanError",
    "InvariantViolationError",
    "LedgerConflictError",
    "LevelTemplate",
    "NotConfiguredError",
    "ResolvedDay",
    "SessionItem",
    "SessionTemplate",
]
