"""Exceptions raised by the scheduler core.

Every error is raised before the first write of the failing operation, or
from inside a transaction that rolls back, so callers never see partial
state.
"""


class LeetDailyError(Exception):
    """Base class for all expected scheduler errors."""


class ValidationError(LeetDailyError, ValueError):
    """Bad input: out-of-range count, invalid outcome, malformed id or field."""


class ConflictError(ValidationError):
    """Input collides with an existing record (duplicate link or topic name)."""


class NotFoundError(LeetDailyError, LookupError):
    """Unknown id, or a problem missing from today's selection."""


class ExhaustionError(LeetDailyError):
    """No pool has an eligible problem left to hand out."""


class InvariantError(LeetDailyError, RuntimeError):
    """Stored data violates an assumption the core relies on."""
