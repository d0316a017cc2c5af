class CirculationError(Exception):
    """Base exception for circulation policy errors."""


class StoreQueryError(CirculationError):
    """A read against the record store failed (unreachable, bad predicate)."""


class PolicyConfigError(CirculationError, ValueError):
    """A fee policy, borrowing limit or fee threshold has an invalid value."""
