"""
Configuration subsystem for Questline (2025).

Purpose
-------
Two layers of configuration:

**Static (Config):**
- Loaded from environment variables at startup (python-dotenv)
- Includes: environment, log level, store backend, Redis URL, timezone
- Changes require a restart

**Tunable (ConfigManager):**
- Loaded from YAML files under `config/`
- Includes: level thresholds, scoring points and multipliers, daily
  challenge requirements, store retry limits
- Dot-notation reads with caller-supplied defaults

Usage
-----
```python
from questline.core.config import Config, ConfigManager

ConfigManager.initialize()
quiz_points = ConfigManager.get("scoring.points.quiz", 50)
tz_name = Config.PROGRESSION_TIMEZONE
```
"""

from questline.core.config.config import Config, Environment, StoreBackend
from questline.core.config.manager import (
    ConfigManager,
    ConfigManagerError,
    ConfigWriteError,
)

__all__ = [
    "Config",
    "Environment",
    "StoreBackend",
    "ConfigManager",
    "ConfigManagerError",
    "ConfigWriteError",
]
