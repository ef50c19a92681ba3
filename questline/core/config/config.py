"""
Static configuration management for Questline (2025).

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. This module
handles non-dynamic configuration that is set at process startup.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Create required directories (logs)
- Track configuration loading metrics

Non-Responsibilities
--------------------
- Tunable progression values (handled by ConfigManager / YAML)
- Secrets management (use environment variables)

Architecture Notes
------------------
- Singleton pattern via class methods (no instantiation)
- Auto-loads on module import via Config.validate()
- Metrics track which values came from environment vs defaults
- Directory paths relative to project root for portability

Environment Variables
---------------------
Optional (with defaults):
- ENVIRONMENT: Environment type (default: development)
- DEBUG: Debug mode flag (default: False)
- LOG_LEVEL: Logging level (default: INFO)
- LOG_JSON: Force JSON console logs (default: production only)
- STORE_BACKEND: "memory" or "redis" (default: memory)
- REDIS_URL: Redis connection string (default: localhost)
- REDIS_SOCKET_TIMEOUT: Socket timeout in seconds (default: 5)
- PROGRESSION_TIMEZONE: IANA zone for calendar days (default: UTC)
- QUESTLINE_CONFIG_DIR: Directory holding YAML tunables (default: ./config)
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ============================================================================
# Enums and Constants
# ============================================================================


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logger not yet initialized during bootstrap
            logging.warning(
                f"Unknown environment '{value}', defaulting to development"
            )
            return cls.DEVELOPMENT


class StoreBackend(Enum):
    """Document store implementations selectable from the environment."""

    MEMORY = "memory"
    REDIS = "redis"


# ============================================================================
# Configuration Metrics Tracker
# ============================================================================


class _ConfigLoadMetrics:
    """
    Internal metrics tracker for configuration loading.

    Tracks which configuration values came from environment variables
    versus defaults, and any validation errors encountered.
    """

    def __init__(self) -> None:
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.defaults_used: Dict[str, Any] = {}
        self.last_reload: Optional[str] = None

    def record_env_load(self, key: str, from_env: bool, default: Any) -> None:
        self.env_vars_loaded[key] = from_env
        if not from_env:
            self.defaults_used[key] = default

    def record_validation_error(self, key: str, error: str) -> None:
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "from_defaults": sum(1 for v in self.env_vars_loaded.values() if not v),
            "validation_errors": len(self.validation_errors),
            "defaults_used": list(self.defaults_used.keys()),
            "last_reload": self.last_reload,
        }


# ============================================================================
# Main Configuration Class
# ============================================================================


class Config:
    """
    Centralized static configuration for the Questline engine.

    Usage
    -----
    >>> backend = Config.STORE_BACKEND
    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    >>> summary = Config.get_config_summary()
    """

    # =========================================================================
    # Internal State
    # =========================================================================

    _metrics: Optional[_ConfigLoadMetrics] = None
    _validated: bool = False

    # =========================================================================
    # Environment Configuration
    # =========================================================================

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True

    # =========================================================================
    # Store Configuration
    # =========================================================================

    STORE_BACKEND: str = StoreBackend.MEMORY.value
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SOCKET_TIMEOUT: int = 5

    # =========================================================================
    # Calendar Configuration
    # =========================================================================

    PROGRESSION_TIMEZONE: str = "UTC"

    # =========================================================================
    # Directory Configuration
    # =========================================================================

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR = PROJECT_ROOT / "logs"
    CONFIG_DIR = PROJECT_ROOT / "config"

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _init_metrics(cls) -> None:
        if cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()

    @classmethod
    def _record_error(cls, key: str, error: str) -> None:
        logging.warning(error)
        if cls._metrics:
            cls._metrics.record_validation_error(key, error)

    @classmethod
    def _safe_int(
        cls,
        key: str,
        default: int,
        min_val: Optional[int] = None,
        max_val: Optional[int] = None,
    ) -> int:
        """
        Safely parse integer from environment with validation.

        Example
        -------
        >>> Config._safe_int("REDIS_SOCKET_TIMEOUT", 5, min_val=1, max_val=60)
        5
        """
        cls._init_metrics()
        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default)
            return default

        try:
            value = int(raw_value)
        except ValueError:
            cls._record_error(
                key, f"{key}='{raw_value}' is not a valid integer, using default {default}"
            )
            return default

        if min_val is not None and value < min_val:
            cls._record_error(
                key, f"{key}={value} is below minimum {min_val}, using default {default}"
            )
            return default

        if max_val is not None and value > max_val:
            cls._record_error(
                key, f"{key}={value} exceeds maximum {max_val}, using default {default}"
            )
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, default)
        return value

    @classmethod
    def _safe_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        cls._init_metrics()
        raw_value = os.getenv(key)

        if raw_value is None:
            if cls._metrics:
                cls._metrics.record_env_load(key, False, default)
            return default

        normalized = raw_value.lower().strip()
        if normalized in {"true", "yes", "1", "on"}:
            value = True
        elif normalized in {"false", "no", "0", "off"}:
            value = False
        else:
            cls._record_error(
                key, f"{key}='{raw_value}' is not a valid boolean, using default {default}"
            )
            return default

        if cls._metrics:
            cls._metrics.record_env_load(key, True, default)
        return value

    @classmethod
    def _safe_str(cls, key: str, default: str) -> str:
        cls._init_metrics()
        value = os.getenv(key, default)
        if cls._metrics:
            cls._metrics.record_env_load(key, key in os.environ, default)
        return value

    @classmethod
    def _safe_choice(cls, key: str, default: str, choices: set[str]) -> str:
        value = cls._safe_str(key, default).lower().strip()
        if value not in choices:
            cls._record_error(
                key, f"{key}='{value}' is not one of {sorted(choices)}, using default {default}"
            )
            return default
        return value

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables with validation.

        Called automatically on module import; tests call it again after
        patching the environment.
        """
        cls._init_metrics()

        cls.ENVIRONMENT = cls._safe_str("ENVIRONMENT", "development")
        cls.DEBUG = bool(cls._safe_bool("DEBUG", False))
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO")
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", None)
        cls.LOG_COLORS = bool(cls._safe_bool("LOG_COLORS", True))

        cls.STORE_BACKEND = cls._safe_choice(
            "STORE_BACKEND",
            StoreBackend.MEMORY.value,
            {backend.value for backend in StoreBackend},
        )
        cls.REDIS_URL = cls._safe_str("REDIS_URL", "redis://localhost:6379/0")
        cls.REDIS_SOCKET_TIMEOUT = cls._safe_int(
            "REDIS_SOCKET_TIMEOUT", 5, min_val=1, max_val=60
        )

        cls.PROGRESSION_TIMEZONE = cls._safe_str("PROGRESSION_TIMEZONE", "UTC")

        config_dir = os.getenv("QUESTLINE_CONFIG_DIR")
        if config_dir:
            cls.CONFIG_DIR = Path(config_dir).resolve()

        if cls._metrics:
            cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Validate critical configuration values on startup.

        Raises
        ------
        ValueError:
            If the configured timezone is unknown in production.
        """
        if cls._validated:
            return

        logger = logging.getLogger(__name__)
        cls._init_metrics()

        try:
            cls.load()

            valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
            if cls.LOG_LEVEL.upper() not in valid_log_levels:
                logger.warning(f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
                cls.LOG_LEVEL = "INFO"

            try:
                ZoneInfo(cls.PROGRESSION_TIMEZONE)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(
                    f"PROGRESSION_TIMEZONE '{cls.PROGRESSION_TIMEZONE}' is not a known timezone"
                ) from exc

            cls.LOGS_DIR.mkdir(exist_ok=True)
            cls._validated = True

            if cls._metrics and cls._metrics.validation_errors:
                logger.warning(
                    f"Configuration warnings: {cls._metrics.validation_errors}"
                )

        except ValueError as e:
            logger.warning(f"Config validation warning: {e}")
            if cls.is_production():
                raise
            cls.PROGRESSION_TIMEZONE = "UTC"

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT.lower() == "development"

    @classmethod
    def is_testing(cls) -> bool:
        return cls.ENVIRONMENT.lower() == "testing"

    # =========================================================================
    # Metrics & Summary
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> Optional[_ConfigLoadMetrics]:
        return cls._metrics

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Get non-sensitive configuration summary for debugging."""
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "store_backend": cls.STORE_BACKEND,
            "progression_timezone": cls.PROGRESSION_TIMEZONE,
            "config_dir": str(cls.CONFIG_DIR),
            "redis_url_set": bool(cls.REDIS_URL),
        }


# Auto-validate on import
Config.validate()
