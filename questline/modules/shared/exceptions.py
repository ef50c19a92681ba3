"""
Domain exceptions for the Questline engine.

Purpose
-------
Define the structured, domain-specific exception hierarchy raised by the
progression and daily-challenge services for rule violations and
caller-facing conditions. API layers translate these into responses.

Design Notes
------------
- All domain exceptions inherit from `QuestlineDomainException`.
- Each exception carries `message`, `details`, `severity`, `is_retryable`
  and `error_code`, matching the infrastructure hierarchy so handlers can
  treat both uniformly via `to_dict()`.
- Duplicate badge awards are prevented structurally (set-union merge) and
  therefore have no exception type.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from questline.core.exceptions import ErrorSeverity


class QuestlineDomainException(Exception):
    """
    Base exception for all Questline domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"


class InvalidInputError(QuestlineDomainException):
    """
    Raised when caller input is rejected before any state is touched.

    Covers negative XP, malformed dates, unknown quest ids and attempts whose
    shape does not match the quest. Never persisted.

    Args:
        field: Name of the offending input
        reason: Explanation of why it was rejected
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(
            f"Invalid {field}: {reason}",
            details={"field": field, "reason": reason},
            error_code=f"INVALID_{field.upper()}",
        )


class NotFoundError(QuestlineDomainException):
    """
    Raised when a requested record does not exist.

    Args:
        resource_type: Type of resource (e.g., "Quest", "DailyChallenge")
        identifier: Optional identifier for the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"
        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class NoChallengeAvailableError(QuestlineDomainException):
    """
    Raised when no quest can back a daily challenge, even after falling back
    to the full non-premium catalog. Not fatal: the dashboard shows no
    challenge.

    Args:
        day: ISO calendar day the selection ran for
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = False

    def __init__(self, day: str) -> None:
        self.day = day
        super().__init__(
            f"No quest available for a daily challenge on {day}",
            details={"day": day},
            error_code="NO_CHALLENGE_AVAILABLE",
        )


class ChallengeNotActiveError(QuestlineDomainException):
    """
    Raised when completing or rerolling a challenge that is not active.

    Args:
        challenge_id: Id of the challenge
        status: Its current status
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, challenge_id: str, status: str) -> None:
        self.challenge_id = challenge_id
        self.status = status
        super().__init__(
            f"Daily challenge {challenge_id} is {status}, not active",
            details={"challenge_id": challenge_id, "status": status},
            error_code="CHALLENGE_NOT_ACTIVE",
        )
