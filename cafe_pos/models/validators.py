"""Model-level validation utilities for data integrity.

Used from ``@validates`` hooks so invalid money or quantities are rejected at
the ORM level, whichever route or service writes them.
"""

from decimal import Decimal


def non_negative(key: str, value):
    """Validate that a numeric value is >= 0."""
    if value is not None:
        v = value if isinstance(value, Decimal) else Decimal(str(value))
        if v < 0:
            raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def positive_int(key: str, value):
    """Validate that a value is an integer > 0."""
    if value is not None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key} must be an integer, got {type(value).__name__}")
        if value <= 0:
            raise ValueError(f"{key} must be positive, got {value}")
    return value
