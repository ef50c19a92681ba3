"""
Infrastructure exceptions for Questline.

Purpose
-------
Define the structured exception hierarchy for infrastructure-level concerns:
store failures, optimistic-concurrency exhaustion, configuration errors and
event bus failures.

Design Notes
------------
- All infrastructure exceptions inherit from `QuestlineInfrastructureException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- Services catch `StoreUnavailableError` and degrade to best-effort
  in-memory results; everything else propagates.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class QuestlineInfrastructureException(Exception):
    """
    Base exception for all Questline infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise QuestlineInfrastructureException(
        ...     "Store write failed",
        ...     {"key": "progression:u-1"}
        ... )
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

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ConfigurationError(QuestlineInfrastructureException):
    """
    Raised when a configuration key is invalid or missing.

    Args:
        config_key: The configuration key that has issues
        message: Description of the configuration problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIGURATION_ERROR",
        )


class StoreUnavailableError(QuestlineInfrastructureException):
    """
    Raised when a document store read or write fails.

    Args:
        operation: Store operation that failed (get, set, update_atomic)
        key: Document key involved
        original_error: Underlying exception, if any
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        operation: str,
        key: str,
        original_error: Optional[Exception] = None,
    ) -> None:
        self.operation = operation
        self.key = key
        self.original_error = original_error
        reason = f": {original_error}" if original_error else ""
        super().__init__(
            f"Store {operation} failed for {key}{reason}",
            details={
                "operation": operation,
                "key": key,
                "original_error_type": type(original_error).__name__ if original_error else None,
            },
            error_code="STORE_UNAVAILABLE",
        )


class StoreConflictError(QuestlineInfrastructureException):
    """
    Raised when an optimistic transaction keeps losing to concurrent writers.

    Args:
        key: Document key being updated
        attempts: Number of attempts made before giving up
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(self, key: str, attempts: int) -> None:
        self.key = key
        self.attempts = attempts
        super().__init__(
            f"Atomic update for {key} aborted after {attempts} conflicting attempts",
            details={"key": key, "attempts": attempts},
            error_code="STORE_CONFLICT",
        )


class EventBusError(QuestlineInfrastructureException):
    """
    Raised when the event bus cannot accept a subscription or publish.

    Args:
        event_name: Event involved
        reason: Description of the failure
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = False

    def __init__(self, event_name: str, reason: str) -> None:
        self.event_name = event_name
        super().__init__(
            f"Event bus failure for {event_name}: {reason}",
            details={"event_name": event_name, "reason": reason},
            error_code="EVENT_BUS_ERROR",
        )


def is_transient_error(exc: Exception) -> bool:
    """Return True when the exception advertises itself as retryable."""
    if isinstance(exc, QuestlineInfrastructureException):
        return exc.is_retryable
    return False


def should_alert(exc: Exception) -> bool:
    """Return True for ERROR and CRITICAL infrastructure failures."""
    if isinstance(exc, QuestlineInfrastructureException):
        return exc.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
    return True
