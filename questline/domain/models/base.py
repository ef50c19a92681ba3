"""
Base domain model helpers for Questline.

Purpose
-------
Validation primitives shared by the frozen value objects in this package.
Value objects validate themselves in `__post_init__` and raise
`DomainValidationError`; services convert that into `InvalidInputError`
before it reaches callers.

Serialization helpers convert between Python dates/datetimes and the ISO
strings stored in documents.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional


class DomainValidationError(Exception):
    """
    Exception raised when domain model validation fails.

    Parameters
    ----------
    message : str
        Human-readable error message
    field : Optional[str]
        Field name that failed validation (if applicable)
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def validate_non_negative(value: int, field_name: str) -> None:
    """
    Validate that a value is a non-negative integer.

    Raises
    ------
    DomainValidationError
        If value is negative or not an integer
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise DomainValidationError(
            f"{field_name} must be an integer, got {type(value).__name__}",
            field=field_name,
        )
    if value < 0:
        raise DomainValidationError(
            f"{field_name} must be non-negative, got {value}",
            field=field_name,
        )


def validate_positive(value: int, field_name: str) -> None:
    validate_non_negative(value, field_name)
    if value == 0:
        raise DomainValidationError(
            f"{field_name} must be positive, got {value}",
            field=field_name,
        )


def validate_not_empty(value: str, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise DomainValidationError(f"{field_name} cannot be empty", field=field_name)


# ============================================================================
# DOCUMENT (DE)SERIALIZATION
# ============================================================================


def day_to_str(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def str_to_day(value: Any) -> Optional[date]:
    """
    Coerce a stored day (date, datetime or ISO string) into a calendar day.

    Returns None for anything that cannot be read as a day.

    Example:
        >>> str_to_day("2026-03-14T08:30:00Z")
        datetime.date(2026, 3, 14)
        >>> str_to_day("yesterday") is None
        True
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def instant_to_str(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def str_to_instant(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
