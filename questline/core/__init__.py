"""
Core infrastructure layer for Questline (2025).

Purpose
-------
Provide a single import surface for the infrastructure subsystems:

- Configuration (Config, ConfigManager)
- Logging (structured logging, logger factory, LogContext)
- Infrastructure exceptions

The event bus, document stores, clock and service container live in their
own subpackages and are imported from there.

Design Decisions
----------------
Configuration is imported first: the logging subsystem reads Config at
import time.
"""

from questline.core.config import Config, ConfigManager
from questline.core.logging.logger import LogContext, get_logger
from questline.core.exceptions import (
    ConfigurationError,
    ErrorSeverity,
    QuestlineInfrastructureException,
    StoreConflictError,
    StoreUnavailableError,
)

__all__ = [
    "Config",
    "ConfigManager",
    "LogContext",
    "get_logger",
    "ErrorSeverity",
    "QuestlineInfrastructureException",
    "ConfigurationError",
    "StoreUnavailableError",
    "StoreConflictError",
]
