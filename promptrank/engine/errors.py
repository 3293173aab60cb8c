"""
promptrank.engine.errors — Engine boundary errors
==================================================

The engine does no I/O, so the only failures are precondition violations
detected at the boundary of each public operation.
"""

from __future__ import annotations

import math

__all__ = [
    "InvalidInputError",
    "require_finite",
    "require_non_negative",
    "require_rating_average",
]


class InvalidInputError(ValueError):
    """An input violated the engine's contract (negative count, NaN, …).

    Attributes
    ----------
    field : Name of the offending input field.
    value : The rejected value.
    """

    def __init__(self, field: str, value: object, reason: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field}={value!r}: {reason}")


def require_finite(field: str, value: float) -> None:
    if not math.isfinite(value):
        raise InvalidInputError(field, value, "must be a finite number")


def require_non_negative(field: str, value: float) -> None:
    """Reject negative or non-finite numbers."""
    require_finite(field, value)
    if value < 0:
        raise InvalidInputError(field, value, "must not be negative")


def require_rating_average(field: str, value: float) -> None:
    """Average ratings live on the 0–5 scale (0 meaning "no ratings")."""
    require_finite(field, value)
    if not 0 <= value <= 5:
        raise InvalidInputError(field, value, "must be between 0 and 5")
