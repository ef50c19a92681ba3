"""
Base Service Foundation

Purpose
-------
Provides the foundational class for the engine's orchestrating services.
Services apply pure progression rules, persist results through the document
store, and emit domain events.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access patterns
- Event emission helpers
- Input validation that raises InvalidInputError

What this class does NOT do:
- Talk to the store directly (subclasses own their keys and documents)
- Contain progression rules (those live in the pure leaf modules)

Usage
-----
    class ProgressionService(BaseService):
        def __init__(self, store, quest_catalog, badge_catalog, clock,
                     config_manager, event_bus, logger):
            super().__init__(config_manager, event_bus, logger)
            self._store = store
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from questline.modules.shared.exceptions import InvalidInputError

if TYPE_CHECKING:
    from logging import Logger

    from questline.core.config.manager import ConfigManager
    from questline.core.event.bus import EventBus


class BaseService:
    """
    Base class for all domain services.

    Args:
        config_manager: Tunable configuration source (class or instance)
        event_bus: Event bus for cross-module communication
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Safely retrieve configuration value.

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        from questline.core.exceptions import ConfigurationError

        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(key, f"Required configuration key '{key}' is missing")
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Publish a domain event; listener failures are isolated by the bus."""
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(self, operation: str, error: Exception, **context: Any) -> None:
        self.log.error(
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
        )

    def log_degraded(self, operation: str, error: Exception, **context: Any) -> None:
        """Log a handled store failure that produced a best-effort result."""
        self.log.warning(
            f"Store unavailable during {operation}; returning unpersisted result",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
        )

    @staticmethod
    def validate_user_id(user_id: Any) -> str:
        """Return a stripped user id, rejecting empty or non-string values."""
        if not isinstance(user_id, str) or not user_id.strip():
            raise InvalidInputError("user_id", f"must be a non-empty string, got {user_id!r}")
        return user_id.strip()

    @staticmethod
    def validate_non_negative_int(value: Any, name: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidInputError(name, f"{name} must be a non-negative integer, got {value!r}")
        return value
