"""Exception hierarchy for the landed-cost engine."""

from __future__ import annotations

from typing import Any


class LandedCostError(Exception):
    """Base error for landed-cost computations."""


class ValidationError(LandedCostError, ValueError):
    """Raised when an input value is malformed (negative amount, bad quantity)."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        super().__init__(f"Invalid value for '{field}': {value!r} ({reason})")
        self.field = field
        self.value = value
        self.reason = reason


class CriteriaUnavailable(LandedCostError):
    """Raised by a criteria tier that cannot produce a value."""
