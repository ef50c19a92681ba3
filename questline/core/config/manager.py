"""
ConfigManager: YAML-backed tunable configuration access for Questline (2025).

Purpose
-------
- Provide hierarchical, dot-notation access to tunable progression values.
- Back configuration with YAML files from the `config/` directory.
- Allow runtime overrides (tests, live balance changes) on top of defaults.

Responsibilities
----------------
- Load and deep-merge every YAML file under the configured directory.
- Serve configuration reads from an in-memory cache with basic metrics.
- Register optional validators per key and apply them on override.

Non-Responsibilities
--------------------
- Environment variables and secrets (handled by Config)
- Catalog semantics (handled by the catalog modules)

Key Design Decisions
--------------------
- YAML is the single source for defaults; overrides live only in memory.
- Reads never raise: a missing key resolves to the caller's default.
- Accessed before `initialize()`, the manager lazily loads from
  `Config.CONFIG_DIR` and logs a warning.
"""

from __future__ import annotations

import copy
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, MutableMapping, Optional

import yaml

from questline.core.config.config import Config
from questline.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Exceptions
# ============================================================================


class ConfigManagerError(RuntimeError):
    """Base error type for ConfigManager-related failures."""


class ConfigWriteError(ConfigManagerError):
    """Raised when a configuration override fails validation."""


__all__ = ["ConfigManager", "ConfigManagerError", "ConfigWriteError"]


@dataclass
class ConfigMetrics:
    gets: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    overrides: int = 0
    yaml_files_loaded: int = 0
    yaml_errors: int = 0
    total_get_time_ms: float = 0.0


# ============================================================================
# ConfigManager
# ============================================================================


class ConfigManager:
    """
    Tunable configuration management with YAML defaults and in-memory overrides.

    Features
    --------
    - Hierarchical config access with dot notation (e.g. `"scoring.time_bonus.fast"`).
    - Deep merge of every YAML file in the config directory.
    - Runtime overrides with optional per-key validators.
    - Metrics and health snapshots.
    """

    _cache: Dict[str, Any] = {}
    _defaults: Dict[str, Any] = {}
    _initialized: bool = False
    _config_dir: Optional[Path] = None
    _metrics: ConfigMetrics = ConfigMetrics()
    _validators: Dict[str, Callable[[Any], Any]] = {}

    # =========================================================================
    # YAML LOADING & DEFAULTS
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = value

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path) -> None:
        """
        Recursively load all YAML config files from `config_dir` into `_defaults`.

        A file that fails to parse is logged and skipped; the remaining files
        still load.
        """
        cls._defaults = {}

        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))
        loaded_count = 0

        for yaml_file in yaml_files:
            relative = str(yaml_file.relative_to(config_dir))
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                cls._metrics.yaml_errors += 1
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": relative,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                continue

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                loaded_count += 1
                logger.debug("Loaded YAML config", extra={"file": relative})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": relative, "root_type": type(data).__name__},
                )

        cls._metrics.yaml_files_loaded = loaded_count
        logger.info(
            "YAML configs loaded",
            extra={
                "yaml_file_count": loaded_count,
                "top_level_keys": sorted(cls._defaults.keys()),
            },
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """
        Load YAML defaults and reset the cache.

        Parameters
        ----------
        config_dir:
            Directory to scan; defaults to `Config.CONFIG_DIR`.
        """
        start_time = time.perf_counter()
        cls._config_dir = Path(config_dir) if config_dir else Path(Config.CONFIG_DIR)
        cls._metrics = ConfigMetrics()
        cls._load_yaml_configs(cls._config_dir)
        cls._cache = copy.deepcopy(cls._defaults)
        cls._initialized = True

        logger.info(
            "ConfigManager initialized",
            extra={
                "config_dir": str(cls._config_dir),
                "init_time_ms": round((time.perf_counter() - start_time) * 1000, 2),
            },
        )

    @classmethod
    def reset(cls) -> None:
        """Drop all state; the next read lazily re-initializes."""
        cls._cache = {}
        cls._defaults = {}
        cls._validators = {}
        cls._initialized = False
        cls._config_dir = None

    # =========================================================================
    # VALIDATORS
    # =========================================================================

    @classmethod
    def register_validator(cls, key: str, validator: Callable[[Any], Any]) -> None:
        """Register a callable applied to values written through `override`."""
        cls._validators[key] = validator

    # =========================================================================
    # READS
    # =========================================================================

    @staticmethod
    def _traverse(tree: Dict[str, Any], key: str) -> Any:
        value: Any = tree
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return None
            value = value[part]
        return value

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Examples
        --------
        >>> ConfigManager.get("scoring.points.quiz")
        50
        >>> ConfigManager.get("missing.key", 0)
        0
        """
        start_time = time.perf_counter()
        cls._metrics.gets += 1

        if not cls._initialized:
            logger.warning(
                "ConfigManager accessed before explicit initialization; "
                "loading defaults from Config.CONFIG_DIR"
            )
            cls.initialize()

        try:
            value = cls._traverse(cls._cache, key)
            if value is None:
                cls._metrics.cache_misses += 1
                return default
            cls._metrics.cache_hits += 1
            return value
        finally:
            cls._metrics.total_get_time_ms += (time.perf_counter() - start_time) * 1000

    @classmethod
    def get_all_keys(cls) -> List[str]:
        return sorted(cls._cache.keys())

    # =========================================================================
    # WRITES
    # =========================================================================

    @classmethod
    def override(cls, key: str, value: Any) -> None:
        """
        Set an in-memory override for a dot-notation key.

        Raises
        ------
        ConfigWriteError
            If a registered validator rejects the value.
        """
        if not cls._initialized:
            cls.initialize()

        validator = cls._validators.get(key)
        if validator is not None:
            try:
                value = validator(value)
            except (TypeError, ValueError) as exc:
                raise ConfigWriteError(f"Invalid value for {key}: {exc}") from exc

        parts = key.split(".")
        node = cls._cache
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
        cls._metrics.overrides += 1

        logger.info("Configuration override applied", extra={"config_key": key})

    @classmethod
    def clear_overrides(cls) -> None:
        """Restore the cache to the loaded YAML defaults."""
        cls._cache = copy.deepcopy(cls._defaults)

    # =========================================================================
    # OBSERVABILITY
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> Dict[str, Any]:
        metrics = asdict(cls._metrics)
        total = cls._metrics.cache_hits + cls._metrics.cache_misses
        metrics["cache_hit_rate"] = (
            round(cls._metrics.cache_hits / total * 100, 2) if total else 0.0
        )
        return metrics

    @classmethod
    def health_snapshot(cls) -> Dict[str, Any]:
        return {
            "initialized": cls._initialized,
            "config_dir": str(cls._config_dir) if cls._config_dir else None,
            "top_level_keys": len(cls._cache),
            "yaml_errors": cls._metrics.yaml_errors,
        }
